import pytest

from multimcp.config import ServerConfig
from multimcp.server import MultiServerMCP


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig(heartbeat_interval=60.0)


@pytest.fixture
def server(config: ServerConfig) -> MultiServerMCP:
    return MultiServerMCP("test", config=config)
