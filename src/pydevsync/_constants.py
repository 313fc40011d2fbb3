"""Internal constants shared across the library."""

DEFAULT_BASE_URL = "http://localhost:19002"
DEFAULT_TITLE_SUFFIX = "Expo Developer Tools"

#: Snapshot poll cadence of the developer console, in seconds.
DEFAULT_POLL_INTERVAL: float = 60.0

#: WebSocket sub-protocol spoken by the subscription endpoint.
GRAPHQL_WS_PROTOCOL = "graphql-ws"

USER_AGENT = "pydevsync"
