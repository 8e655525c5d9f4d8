"""
Dictionary <-> model mapping shared by every persisted entity.

Payloads coming from the JSON API and from the build data files are plain
dicts; unknown keys, the primary key and a model's `protected_fields` are
dropped rather than rejected.
"""

from datetime import date, datetime

from sqlalchemy import inspect

from wholesale_pos import db
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.domain.core.data_insertion")

AUDIT_FIELDS = frozenset(('created_at', 'updated_at', 'created_by_id', 'updated_by_id'))


class DataInsertionMixin:

    # Columns only written by dedicated SQL statements, never from a payload
    protected_fields = ()

    @classmethod
    def column_keys(cls):
        return [column.key for column in inspect(cls).columns]

    @classmethod
    def _writable(cls, data_dict, only=None):
        blocked = set(cls.protected_fields) | AUDIT_FIELDS | {'id'}
        allowed = set(only) if only is not None else set(cls.column_keys())
        return {key: value for key, value in data_dict.items() if key in allowed and key not in blocked}

    @classmethod
    def from_dict(cls, data_dict, user_id=None):
        """
        Build an unsaved instance from `data_dict`.

        Args:
            data_dict: payload; keys that are not writable columns are ignored
            user_id: stored as creator and last editor
        """
        instance = cls(**cls._writable(data_dict))
        instance.created_by_id = user_id
        instance.updated_by_id = user_id
        return instance

    def apply_dict(self, data_dict, user_id=None, only=None):
        """Copy writable keys onto the instance (restricted to `only` when given); no commit"""
        changes = self._writable(data_dict, only)
        for key, value in changes.items():
            setattr(self, key, value)
        self.updated_by_id = user_id
        return changes

    def to_dict(self, include_audit_fields=True):
        result = {}
        for key in self.column_keys():
            if not include_audit_fields and key in AUDIT_FIELDS:
                continue
            value = getattr(self, key)
            result[key] = value.isoformat() if isinstance(value, (datetime, date)) else value
        return result

    @classmethod
    def find_or_create_from_dict(cls, data_dict, user_id=None, lookup_fields=None, commit=True):
        """
        Return `(instance, created)`, matching an existing row on `lookup_fields`
        (default: the unique columns present in `data_dict`).
        """
        if lookup_fields is None:
            lookup_fields = [c.key for c in inspect(cls).columns if c.unique and c.key in data_dict]

        criteria = {field: data_dict[field] for field in lookup_fields if field in data_dict}
        existing = cls.query.filter_by(**criteria).first() if criteria else None
        if existing is not None:
            logger.debug(f"{cls.__name__} already present: {criteria}")
            return existing, False

        instance = cls.from_dict(data_dict, user_id)
        db.session.add(instance)
        if commit:
            try:
                db.session.commit()
            except Exception as e:
                db.session.rollback()
                logger.error(f"Error creating {cls.__name__} {criteria}: {e}")
                raise
            logger.info(f"Created {cls.__name__} {instance.id}")
        return instance, True
