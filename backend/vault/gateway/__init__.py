from vault.gateway.base import PersistenceGateway, RecordCollection  # noqa: F401
from vault.gateway.memory import InMemoryGateway  # noqa: F401
from vault.gateway.sql import SqlGateway  # noqa: F401
