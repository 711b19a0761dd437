"""
Table-scoped data-access gateway.

Wraps the Django ORM behind select/insert/update/delete calls addressed by
table name (the model's ``db_table``), returning plain dict rows. All calls
are coroutines so session-scoped consumers such as the order board can await
them from an event loop; every failure surfaces as ``GatewayError``.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from asgiref.sync import sync_to_async
from django.apps import apps
from django.core.exceptions import FieldDoesNotExist, FieldError, ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from .signals import rows_updated

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

_QUERY_ERRORS = (DatabaseError, ValidationError, FieldError, FieldDoesNotExist, ValueError, TypeError)


class GatewayError(Exception):
    """A failed gateway call with a human-readable message"""

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.table = table

    def __str__(self):
        return self.message


def _error_message(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        if hasattr(exc, 'message_dict'):
            return '; '.join(f"{field}: {' '.join(msgs)}" for field, msgs in exc.message_dict.items())
        return ' '.join(exc.messages)
    return str(exc) or exc.__class__.__name__


def row_from_instance(instance, related: Iterable[str] = ()) -> Row:
    """Flatten a model instance into a dict, embedding the named relations"""
    row = {field.attname: getattr(instance, field.attname) for field in instance._meta.concrete_fields}
    for name in related:
        field = instance._meta.get_field(name)
        if field.one_to_many or field.many_to_many:
            row[name] = [row_from_instance(obj) for obj in getattr(instance, name).all()]
        else:
            target = getattr(instance, name)
            row[name] = row_from_instance(target) if target is not None else None
    return row


class DataGateway:
    """ORM-backed gateway. Construct one per consumer and pass it down."""

    def __init__(self, using: str = 'default'):
        self.using = using
        self._tables = {model._meta.db_table: model for model in apps.get_models()}

    def model_for(self, table: str):
        try:
            return self._tables[table]
        except KeyError:
            raise GatewayError(f"Unknown table '{table}'", table=table)

    def _queryset(self, model, related: Iterable[str]):
        queryset = model.objects.using(self.using).all()
        for name in related:
            field = model._meta.get_field(name)
            if field.one_to_many or field.many_to_many:
                queryset = queryset.prefetch_related(name)
            else:
                queryset = queryset.select_related(name)
        return queryset

    # --- sync implementations (run through sync_to_async) ---

    def _select(self, table, filters, ordering, related) -> List[Row]:
        model = self.model_for(table)
        related = tuple(related or ())
        try:
            queryset = self._queryset(model, related).filter(**(filters or {}))
            if ordering:
                queryset = queryset.order_by(*ordering)
            return [row_from_instance(obj, related) for obj in queryset]
        except _QUERY_ERRORS as e:
            raise GatewayError(_error_message(e), table=table) from e

    def _select_one(self, table, pk, related) -> Optional[Row]:
        rows = self._select(table, {'pk': pk}, None, related)
        return rows[0] if rows else None

    def _insert(self, table, row) -> Row:
        model = self.model_for(table)
        try:
            with transaction.atomic(using=self.using):
                instance = model(**row)
                instance.full_clean()
                instance.save(using=self.using)
            return row_from_instance(instance)
        except _QUERY_ERRORS as e:
            raise GatewayError(_error_message(e), table=table) from e

    def _update(self, table, filters, patch) -> List[Row]:
        if not filters:
            raise GatewayError("Refusing to update without a filter", table=table)
        model = self.model_for(table)
        patch = dict(patch)
        try:
            model._meta.get_field('updated_at')
            patch.setdefault('updated_at', timezone.now())
        except FieldDoesNotExist:
            pass
        try:
            with transaction.atomic(using=self.using):
                queryset = model.objects.using(self.using).select_for_update().filter(**filters)
                pks = list(queryset.values_list('pk', flat=True))
                if pks:
                    model.objects.using(self.using).filter(pk__in=pks).update(**patch)
                    transaction.on_commit(
                        lambda: rows_updated.send(sender=model, pks=pks, fields=sorted(patch)),
                        using=self.using,
                    )
            return [row_from_instance(obj) for obj in model.objects.using(self.using).filter(pk__in=pks)]
        except _QUERY_ERRORS as e:
            raise GatewayError(_error_message(e), table=table) from e

    def _delete(self, table, filters) -> None:
        if not filters:
            raise GatewayError("Refusing to delete without a filter", table=table)
        model = self.model_for(table)
        try:
            with transaction.atomic(using=self.using):
                model.objects.using(self.using).filter(**filters).delete()
        except _QUERY_ERRORS as e:
            raise GatewayError(_error_message(e), table=table) from e

    # --- public async API ---

    async def select(self, table: str, filters: Optional[Dict[str, Any]] = None,
                     ordering: Optional[List[str]] = None,
                     related: Optional[Iterable[str]] = None) -> List[Row]:
        return await sync_to_async(self._select)(table, filters, ordering, related)

    async def select_one(self, table: str, pk: Any, related: Optional[Iterable[str]] = None) -> Optional[Row]:
        return await sync_to_async(self._select_one)(table, pk, related)

    async def insert(self, table: str, row: Row) -> Row:
        return await sync_to_async(self._insert)(table, row)

    async def update(self, table: str, filters: Dict[str, Any], patch: Dict[str, Any]) -> List[Row]:
        return await sync_to_async(self._update)(table, filters, patch)

    async def delete(self, table: str, filters: Dict[str, Any]) -> None:
        await sync_to_async(self._delete)(table, filters)
