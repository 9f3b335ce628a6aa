from functools import lru_cache

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    false,
    text,
)
from sqlalchemy.engine import Engine

from contestbot.settings import settings

metadata = MetaData()

codes = Table(
    "codes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("code", String(32), nullable=False),
    Column("code_id", String(64), nullable=False, unique=True),
    Column("status", String(16), nullable=False, server_default="active"),
    Column("phone_number", String(32)),
    Column("name", Text),
    Column("email", Text),
    Column("city", Text),
    # Set when the code is claimed
    Column("created_at", DateTime(timezone=True)),
    Column("is_winner", Boolean, nullable=False, server_default=false()),
)

# A code value may appear once among active rows.
Index(
    "uq_codes_active_code",
    codes.c.code,
    unique=True,
    postgresql_where=text("status = 'active'"),
    sqlite_where=text("status = 'active'"),
)
Index("ix_codes_email", codes.c.email)


def build_engine(url: str) -> Engine:
    kwargs = {"pool_pre_ping": True}
    if url.startswith("postgresql"):
        kwargs["connect_args"] = {
            "connect_timeout": 5,
            "options": f"-c statement_timeout={int(settings.DB_STATEMENT_TIMEOUT_MS)}",
        }
        kwargs["pool_timeout"] = 5
    return create_engine(url, **kwargs)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return build_engine(settings.DATABASE_URL)


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)
