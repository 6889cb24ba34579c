"""GraphQL documents sent to OpenCTI, one per tool."""

# Only the main sectors maintained by the platform user are returned
MAIN_SECTORS_CREATOR_ID = "6b85141f-d822-48a9-99f7-20f404a51a45"

GET_SECTORS_QUERY = """
query FindSectorsByNameAndCreator($search: String!) {
  sectors(
    search: $search
    orderBy: name
    orderMode: asc
    filters: {
      mode: and
      filters: [
        {
          key: "creator_id"
          values: ["%(creator_id)s"]
          operator: eq
        }
      ]
      filterGroups: []
    }
  ) {
    edges {
      node {
        id
        name
        description
      }
    }
  }
}
""" % {"creator_id": MAIN_SECTORS_CREATOR_ID}

LIST_SECTORS_QUERY = """
query ListAvailableSectors {
  sectors(
    orderBy: name
    orderMode: asc
    filters: {
      mode: and
      filters: [
        {
          key: "creator_id"
          values: ["%(creator_id)s"]
          operator: eq
        }
      ]
      filterGroups: []
    }
  ) {
    edges {
      node {
        id
        name
        description
      }
    }
  }
}
""" % {"creator_id": MAIN_SECTORS_CREATOR_ID}

LIST_COUNTRIES_QUERY = """
query ListAvailableCountries($search: String) {
  countries(
    search: $search
    orderBy: name
    orderMode: asc
  ) {
    edges {
      node {
        id
        name
        description
        x_opencti_aliases
      }
    }
  }
}
"""

LIST_REGIONS_QUERY = """
query ListAvailableRegions($search: String) {
  regions(
    search: $search
    orderBy: name
    orderMode: asc
  ) {
    edges {
      node {
        id
        name
        description
        x_opencti_aliases
      }
    }
  }
}
"""

GET_REPORT_TYPES_QUERY = """
query GetReportTypes {
  vocabularies(
    category: report_types_ov
  ) {
    edges {
      node {
        id
        name
        description
      }
    }
  }
}
"""

GET_REPORTS_BY_FILTERS_QUERY = """
query GetReportsByFilters($count: Int!, $cursor: ID, $filters: FilterGroup, $orderBy: ReportsOrdering, $orderMode: OrderingMode) {
  reports(
    first: $count
    after: $cursor
    filters: $filters
    orderBy: $orderBy
    orderMode: $orderMode
  ) {
    edges {
      node {
        id
        name
        description
        published
        report_types
        confidence
        createdBy {
          id
          name
        }
        objectMarking {
          id
          definition_type
          definition
        }
        objectLabel {
          id
          value
          color
        }
      }
      cursor
    }
    pageInfo {
      endCursor
      hasNextPage
      globalCount
    }
  }
}
"""

GET_MALWARE_BY_NAME_QUERY = """
query GetMalwareByName($search: String!) {
  malwares(
    search: $search
    orderBy: name
    orderMode: asc
  ) {
    edges {
      node {
        id
        name
        description
        malware_types
        is_family
        first_seen
        last_seen
        aliases
      }
    }
  }
}
"""

GET_CAMPAIGNS_BY_FILTERS_QUERY = """
query GetCampaignsByFilters($count: Int!, $cursor: ID, $filters: FilterGroup, $orderBy: CampaignsOrdering, $orderMode: OrderingMode) {
  campaigns(
    first: $count
    after: $cursor
    filters: $filters
    orderBy: $orderBy
    orderMode: $orderMode
  ) {
    edges {
      node {
        id
        name
        description
        first_seen
        last_seen
        createdBy {
          id
          name
        }
        objectMarking {
          id
          definition_type
          definition
        }
        objectLabel {
          id
          value
          color
        }
      }
      cursor
    }
    pageInfo {
      endCursor
      hasNextPage
      globalCount
    }
  }
}
"""

GET_INDICATORS_BY_OBJECT_AND_TYPE_QUERY = """
query GetIndicatorsByObjectAndType($count: Int!, $cursor: ID, $filters: FilterGroup, $orderBy: IndicatorsOrdering, $orderMode: OrderingMode) {
  indicators(
    first: $count
    after: $cursor
    filters: $filters
    orderBy: $orderBy
    orderMode: $orderMode
  ) {
    edges {
      node {
        id
        entity_type
        name
        pattern
        pattern_type
        valid_from
        valid_until
        x_opencti_score
        x_opencti_main_observable_type
        created
        confidence
        revoked
        createdBy {
          id
          name
        }
        objectMarking {
          id
          definition_type
          definition
        }
        objectLabel {
          id
          value
          color
        }
      }
      cursor
    }
    pageInfo {
      endCursor
      hasNextPage
      globalCount
    }
  }
}
"""

STIX_RELATIONSHIPS_DISTRIBUTION_QUERY = """
query StixRelationshipsDistributionQuery(
  $field: String!
  $operation: StatsOperation!
  $startDate: DateTime
  $endDate: DateTime
  $dateAttribute: String
  $isTo: Boolean
  $limit: Int
  $fromOrToId: [String]
  $elementWithTargetTypes: [String]
  $fromId: [String]
  $fromRole: String
  $fromTypes: [String]
  $toId: [String]
  $toRole: String
  $toTypes: [String]
  $relationship_type: [String]
  $confidences: [Int]
  $search: String
  $filters: FilterGroup
  $dynamicFrom: FilterGroup
  $dynamicTo: FilterGroup
) {
  stixRelationshipsDistribution(
    field: $field
    operation: $operation
    startDate: $startDate
    endDate: $endDate
    dateAttribute: $dateAttribute
    isTo: $isTo
    limit: $limit
    fromOrToId: $fromOrToId
    elementWithTargetTypes: $elementWithTargetTypes
    fromId: $fromId
    fromRole: $fromRole
    fromTypes: $fromTypes
    toId: $toId
    toRole: $toRole
    toTypes: $toTypes
    relationship_type: $relationship_type
    confidences: $confidences
    search: $search
    filters: $filters
    dynamicFrom: $dynamicFrom
    dynamicTo: $dynamicTo
  ) {
    label
    value
    entity {
      __typename
      ... on BasicObject {
        __isBasicObject: __typename
        id
        entity_type
      }
      ... on BasicRelationship {
        __isBasicRelationship: __typename
        id
        entity_type
      }
      ... on StixObject {
        __isStixObject: __typename
        representative {
          main
        }
      }
      ... on StixRelationship {
        __isStixRelationship: __typename
        representative {
          main
        }
      }
      ... on Creator {
        name
        id
      }
      ... on Group {
        name
        id
      }
    }
  }
}
"""
