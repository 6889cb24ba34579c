"""Transport-specific response sinks and the stdio loop."""
