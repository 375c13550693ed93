from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

_UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def upsert_insert(db: AsyncSession, model):
    """Return an INSERT for ``model`` that supports ``ON CONFLICT`` on the session's backend."""
    dialect = db.get_bind().dialect.name
    try:
        return _UPSERT_INSERTS[dialect](model)
    except KeyError:
        raise RuntimeError(f"Upserts are not supported on the '{dialect}' backend") from None
