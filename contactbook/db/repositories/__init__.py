from contactbook.db.repositories.store import SqlAlchemyStore, coerce_uuid

__all__ = [
    "SqlAlchemyStore",
    "coerce_uuid"
]
