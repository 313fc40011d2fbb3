"""GraphQL documents spoken with the developer tools server."""

from __future__ import annotations

_MESSAGE_NODE_FIELDS = """
        __typename
        id
        msg
        time
        level
"""

PROJECT_QUERY = f"""
query IndexPageQuery {{
  currentProject {{
    id
    manifestUrl
    settings {{
      hostType
    }}
    config {{
      name
      description
      slug
      githubUrl
    }}
    sources {{
      __typename
      id
      name
      messages {{
        count
        unreadCount
        nodes {{{_MESSAGE_NODE_FIELDS}        }}
        pageInfo {{
          lastReadCursor
        }}
      }}
    }}
    messages {{
      pageInfo {{
        lastCursor
      }}
    }}
  }}
  userSettings {{
    id
    sendTo
  }}
  projectManagerLayout {{
    id
    selected {{
      id
    }}
    sources {{
      id
    }}
  }}
  processInfo {{
    networkStatus
    isAndroidSimulatorSupported
    isIosSimulatorSupported
  }}
  user {{
    username
  }}
}}
"""

PROJECT_POLL_QUERY = """
query IndexPagePollQuery {
  currentProject {
    id
    manifestUrl
    settings {
      hostType
    }
    config {
      name
      description
      slug
      githubUrl
    }
  }
  userSettings {
    id
    sendTo
  }
  projectManagerLayout {
    id
    selected {
      id
    }
    sources {
      id
    }
  }
  processInfo {
    networkStatus
    isAndroidSimulatorSupported
    isIosSimulatorSupported
  }
}
"""

MESSAGE_SUBSCRIPTION = f"""
subscription MessageSubscription($after: String) {{
  messages(after: $after) {{
    type
    cursor
    node {{{_MESSAGE_NODE_FIELDS}        source {{
          __typename
          id
        }}
    }}
  }}
}}
"""

UPDATE_LAST_READ_MUTATION = """
mutation UpdateLastRead($input: UpdateLastReadInput!) {
  updateLastRead(input: $input) {
    __typename
    id
  }
}
"""
