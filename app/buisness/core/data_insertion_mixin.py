"""
Dictionary helpers shared by the collection models.
Seeding reads rows from build_data_critical.json through these methods and the
JSON API serialises rows with to_dict().
"""

from app import db
from datetime import date, datetime
from sqlalchemy import inspect
from app.utils.logger import get_logger

logger = get_logger("waste_collection.domain.core.data_insertion")

AUDIT_FIELDS = ('created_at', 'updated_at', 'created_by_id', 'updated_by_id')


class DataInsertionMixin:
    """
    Column-aware conversion between model rows and plain dictionaries.

    Keys that are not mapped columns are ignored, so seed files may carry
    notes or derived values without breaking the build.
    """

    @classmethod
    def column_names(cls):
        return {column.key for column in inspect(cls).columns}

    @classmethod
    def from_dict(cls, data, skip_fields=()):
        """Build an unsaved row from the mapped keys of ``data``"""
        columns = cls.column_names()
        values = {}
        for key, value in data.items():
            if key not in columns or key in skip_fields:
                continue
            # Let column defaults fill timestamps left empty in seed files
            if key in AUDIT_FIELDS and value is None:
                continue
            values[key] = value
        return cls(**values)

    def to_dict(self, include_audit_fields=True):
        """Serialise mapped columns; dates become ISO 8601 strings"""
        result = {}
        for key in self.column_names():
            if not include_audit_fields and key in AUDIT_FIELDS:
                continue
            value = getattr(self, key)
            result[key] = value.isoformat() if isinstance(value, (datetime, date)) else value
        return result

    @classmethod
    def create_from_dict(cls, data, skip_fields=(), commit=True):
        instance = cls.from_dict(data, skip_fields)
        db.session.add(instance)
        if commit:
            try:
                db.session.commit()
            except Exception:
                db.session.rollback()
                logger.error(f"Could not insert {cls.__name__}", extra={"context": {"keys": sorted(data)}})
                raise
        logger.debug(f"Inserted {cls.__name__}")
        return instance

    @classmethod
    def find_or_create_from_dict(cls, data, lookup_fields=None, commit=True):
        """
        Return ``(row, created)``.

        Lookup uses ``lookup_fields`` or, by default, the unique columns present
        in ``data``. A row that already exists is returned unchanged, so values
        edited by an administrator survive a rebuild.
        """
        if lookup_fields is None:
            lookup_fields = [c.key for c in inspect(cls).columns if c.unique and c.key in data]

        criteria = {field: data[field] for field in lookup_fields if field in data}
        if criteria:
            existing = db.session.query(cls).filter_by(**criteria).first()
            if existing is not None:
                return existing, False

        return cls.create_from_dict(data, commit=commit), True
