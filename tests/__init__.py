# This file makes tests a Python package

# Narrow filters for upstream warnings raised while importing uvicorn/starlette.
import warnings as _warnings

# websockets.server.WebSocketServerProtocol deprecation via uvicorn websockets_impl
_warnings.filterwarnings(
    "ignore",
    category=DeprecationWarning,
    message=r".*websockets\.server\.WebSocketServerProtocol is deprecated.*",
)

# TestClient closes its portal loop after the app; unclosed sockets are reported late
_warnings.filterwarnings(
    "ignore",
    category=ResourceWarning,
    message=r"unclosed <socket\.socket.*",
)
