"""
Response Normalizer

Walks a compiled selection tree against a response payload and writes the
result into a record source as flat, identity-addressed records.

RESPONSIBILITY: payload tree -> records, plus descriptors for everything
that cannot be resolved synchronously (handles, @defer, @stream, @module,
actor changes).

INVARIANTS:
- Single pass, depth-first, in selection order; later writes win
- Writes go straight into the source (no staging); a fatal error leaves
  earlier writes in place
- Fatal errors are contract violations (see recordgraph.errors); payload
  inconsistencies are only reported to the diagnostics sink
"""

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from recordgraph.errors import (
    InvalidDataIDError,
    NormalizationError,
    PayloadShapeError,
    RootRecordMissingError,
    UndefinedVariableError,
)
from recordgraph.multi_actor import get_actor_identifier_from_payload
from recordgraph.selection.nodes import (
    ActorChange,
    ClientExtension,
    Condition,
    Defer,
    InlineFragment,
    LinkedField,
    LinkedHandle,
    ModuleImport,
    ScalarField,
    ScalarHandle,
    Stream,
    TypeDiscriminator,
)
from recordgraph.selection.selector import NormalizationSelector, create_normalization_selector
from recordgraph.store.client_id import ROOT_ID, generate_client_id, is_client_id
from recordgraph.store.record import Record
from recordgraph.store.record_source import RecordSource
from recordgraph.store.storage_keys import (
    TYPENAME_KEY,
    get_argument_values,
    get_handle_storage_key,
    get_module_component_key,
    get_module_operation_key,
    get_storage_key,
)
from recordgraph.store.type_id import TYPE_SCHEMA_TYPE, generate_type_id

from .contracts import (
    ActorPayload,
    DeferPlaceholder,
    HandleFieldPayload,
    ModuleImportPayload,
    NormalizationResult,
    StreamPlaceholder,
)
from .diagnostics import Diagnostic, DiagnosticKind, default_diagnostics
from .options import NormalizationOptions

logger = logging.getLogger(__name__)

# Distinguishes "field absent from payload" from an explicit null
_MISSING = object()


@dataclass(frozen=True)
class TraversalContext:
    """
    Flags inherited by every selection below the point that raised them.

    is_client_extension: inside a client extension; the server never sends
        these fields
    is_unmatched_abstract_type: inside an abstract-type fragment the record
        does not satisfy (legacy refinement); fields are legitimately absent
    """
    is_client_extension: bool = False
    is_unmatched_abstract_type: bool = False

    @property
    def is_optional_field(self) -> bool:
        return self.is_client_extension or self.is_unmatched_abstract_type


_ROOT_CONTEXT = TraversalContext()


def _same_value(previous: Any, value: Any) -> bool:
    """Strict payload equality: `True`, `1` and `1.0` are different values."""
    if type(previous) is not type(value):
        return False
    if isinstance(value, dict):
        return previous.keys() == value.keys() and all(_same_value(previous[k], value[k]) for k in value)
    if isinstance(value, list):
        return len(previous) == len(value) and all(_same_value(p, v) for p, v in zip(previous, value))
    return previous == value


def normalize(
    record_source: RecordSource,
    selector: NormalizationSelector,
    response: Dict[str, Any],
    options: Optional[NormalizationOptions] = None,
) -> NormalizationResult:
    """
    Normalize `response` into `record_source`, starting at `selector.data_id`.

    Raises:
        RootRecordMissingError: selector.data_id is not in the source
        UndefinedVariableError: a condition/argument names an unknown variable
        PayloadShapeError: the payload contradicts the selection tree's shape
        InvalidDataIDError: a resolved identity is not a string
    """
    normalizer = ResponseNormalizer(
        record_source,
        selector.variables,
        options or NormalizationOptions(),
    )
    return normalizer.normalize_response(selector.node, selector.data_id, response)


class ResponseNormalizer:
    """Single-use walker state for one normalize() call."""

    def __init__(
        self,
        record_source: RecordSource,
        variables: Dict[str, Any],
        options: NormalizationOptions,
    ):
        self._record_source = record_source
        self._variables = variables
        self._get_data_id = options.get_data_id
        self._treat_missing_fields_as_null = options.treat_missing_fields_as_null
        self._diagnostics = options.diagnostics if options.diagnostics is not None else default_diagnostics()
        self._precise_type_refinement = record_source.precise_type_refinement
        self._path: List[str] = list(options.path or [])

        self._handle_field_payloads: List[HandleFieldPayload] = []
        self._incremental_placeholders: List[Any] = []
        self._module_import_payloads: List[ModuleImportPayload] = []
        self._actor_payloads: List[ActorPayload] = []

        # Slots written during this call, for conflict detection
        self._written_scalars: Dict[Tuple[str, str], Any] = {}
        self._written_links: Dict[Tuple[str, str, Optional[int]], str] = {}

    def normalize_response(self, node, data_id: str, data: Dict[str, Any]) -> NormalizationResult:
        record = self._record_source.get(data_id)
        if record is None:
            raise RootRecordMissingError(data_id)

        self._traverse_selections(node, record, data, _ROOT_CONTEXT)

        logger.debug(
            f"Normalized payload at {data_id}: "
            f"{len(self._handle_field_payloads)} handle(s), "
            f"{len(self._incremental_placeholders)} placeholder(s), "
            f"{len(self._module_import_payloads)} module import(s), "
            f"{len(self._actor_payloads)} actor payload(s)"
        )
        return NormalizationResult(
            errors=None,
            field_payloads=self._handle_field_payloads,
            incremental_placeholders=self._incremental_placeholders,
            module_import_payloads=self._module_import_payloads,
            actor_payloads=self._actor_payloads,
            source=self._record_source,
            is_final=False,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_variable_value(self, name: str) -> Any:
        if name not in self._variables:
            raise UndefinedVariableError(name)
        return self._variables[name]

    def _get_record_type(self, data: Dict[str, Any]) -> str:
        type_name = data.get(TYPENAME_KEY)
        if type_name is None:
            raise PayloadShapeError(
                f"Expected a typename for record `{json.dumps(data, indent=2, default=str)}`."
            )
        if not isinstance(type_name, str):
            raise PayloadShapeError(f"Expected the typename of a record to be a string, got {type_name!r}.")
        return type_name

    def _report(self, kind: DiagnosticKind, message: str, **details: Any) -> None:
        data_id = details.pop("data_id", None)
        storage_key = details.pop("storage_key", None)
        self._diagnostics.report(
            Diagnostic(kind=kind, message=message, data_id=data_id, storage_key=storage_key, details=details)
        )

    def _should_write_missing_as_null(
        self,
        context: TraversalContext,
        record: Record,
        response_key: str,
        storage_key: str,
    ) -> bool:
        """Decide what an absent field means: skip it, or store null."""
        if context.is_optional_field:
            return False
        if not self._treat_missing_fields_as_null:
            self._report(
                DiagnosticKind.MISSING_FIELD,
                f"Payload did not contain a value for field `{response_key}: {storage_key}`. "
                "Check that you are parsing with the same query that was used to fetch the payload.",
                data_id=record.data_id,
                storage_key=storage_key,
                path=list(self._path),
            )
            return False
        return True

    # =========================================================================
    # Traversal
    # =========================================================================

    def _traverse_selections(self, node, record: Record, data: Any, context: TraversalContext) -> None:
        for selection in node.selections:
            if isinstance(selection, (ScalarField, LinkedField)):
                self._normalize_field(selection, record, data, context)
            elif isinstance(selection, Condition):
                condition_value = self._get_variable_value(selection.condition)
                if isinstance(condition_value, bool) and condition_value == selection.passing_value:
                    self._traverse_selections(selection, record, data, context)
            elif isinstance(selection, InlineFragment):
                self._normalize_inline_fragment(selection, record, data, context)
            elif isinstance(selection, TypeDiscriminator):
                if self._precise_type_refinement:
                    self._record_abstract_membership(record, data, selection.abstract_key)
            elif isinstance(selection, (ScalarHandle, LinkedHandle)):
                self._normalize_handle(selection, record)
            elif isinstance(selection, ModuleImport):
                self._normalize_module_import(selection, record, data)
            elif isinstance(selection, Defer):
                self._normalize_defer(selection, record, data, context)
            elif isinstance(selection, Stream):
                self._normalize_stream(selection, record, data, context)
            elif isinstance(selection, ClientExtension):
                self._traverse_selections(
                    selection, record, data, replace(context, is_client_extension=True)
                )
            elif isinstance(selection, ActorChange):
                self._normalize_actor_change(selection, record, data, context)
            else:
                raise NormalizationError(
                    f"Unexpected selection kind `{getattr(selection, 'kind', type(selection).__name__)}`."
                )

    def _normalize_inline_fragment(
        self,
        fragment: InlineFragment,
        record: Record,
        data: Any,
        context: TraversalContext,
    ) -> None:
        if fragment.abstract_key is None:
            if record.type_name == fragment.type:
                self._traverse_selections(fragment, record, data, context)
        elif self._precise_type_refinement:
            if self._record_abstract_membership(record, data, fragment.abstract_key):
                self._traverse_selections(fragment, record, data, context)
        else:
            # Legacy refinement: always normalize, but fields of a type the
            # record does not satisfy are expected to be absent.
            implements_interface = self._implements_abstract_type(data, fragment.abstract_key)
            self._traverse_selections(
                fragment,
                record,
                data,
                replace(
                    context,
                    is_unmatched_abstract_type=context.is_unmatched_abstract_type or not implements_interface,
                ),
            )

    def _implements_abstract_type(self, data: Any, abstract_key: str) -> bool:
        if not isinstance(data, dict):
            raise PayloadShapeError(
                f"Expected data for abstract type refinement `{abstract_key}` to be an object."
            )
        return abstract_key in data

    def _record_abstract_membership(self, record: Record, data: Any, abstract_key: str) -> bool:
        """Memoize whether the record's concrete type implements `abstract_key`."""
        implements_interface = self._implements_abstract_type(data, abstract_key)
        type_id = generate_type_id(record.type_name)
        type_record = self._record_source.get(type_id)
        if type_record is None:
            type_record = Record(type_id, TYPE_SCHEMA_TYPE)
            self._record_source.set(type_id, type_record)
        type_record.set_value(abstract_key, implements_interface)
        return implements_interface

    def _normalize_handle(self, selection, record: Record) -> None:
        args = get_argument_values(selection.args, self._variables) if selection.args else {}
        handle_args = (
            get_argument_values(selection.handle_args, self._variables) if selection.handle_args else {}
        )
        self._handle_field_payloads.append(
            HandleFieldPayload(
                args=args,
                data_id=record.data_id,
                field_key=get_storage_key(selection, self._variables),
                handle=selection.handle,
                handle_key=get_handle_storage_key(selection, self._variables),
                handle_args=handle_args,
            )
        )

    def _normalize_defer(self, defer: Defer, record: Record, data: Any, context: TraversalContext) -> None:
        is_deferred = defer.if_ is None or self._get_variable_value(defer.if_)
        if not isinstance(is_deferred, bool):
            self._report(
                DiagnosticKind.NON_BOOLEAN_CONDITION,
                f"Expected value for @defer `if` argument to be a boolean, got `{is_deferred!r}`.",
                data_id=record.data_id,
                label=defer.label,
            )
        if is_deferred is False:
            # No later chunk will come: the data is already here.
            self._traverse_selections(defer, record, data, context)
            return
        if not isinstance(data, dict):
            raise PayloadShapeError(f"Expected data for @defer `{defer.label}` to be an object.")
        self._incremental_placeholders.append(
            DeferPlaceholder(
                data=data,
                label=defer.label,
                path=list(self._path),
                selector=create_normalization_selector(defer, record.data_id, self._variables),
                type_name=record.type_name,
            )
        )

    def _normalize_stream(self, stream: Stream, record: Record, data: Any, context: TraversalContext) -> None:
        # Initially delivered items are always normalized now.
        self._traverse_selections(stream, record, data, context)
        is_streamed = stream.if_ is None or self._get_variable_value(stream.if_)
        if not isinstance(is_streamed, bool):
            self._report(
                DiagnosticKind.NON_BOOLEAN_CONDITION,
                f"Expected value for @stream `if` argument to be a boolean, got `{is_streamed!r}`.",
                data_id=record.data_id,
                label=stream.label,
            )
        if is_streamed is True:
            self._incremental_placeholders.append(
                StreamPlaceholder(
                    label=stream.label,
                    path=list(self._path),
                    parent_id=record.data_id,
                    node=stream,
                    variables=self._variables,
                )
            )

    def _normalize_module_import(self, module_import: ModuleImport, record: Record, data: Any) -> None:
        if not isinstance(data, dict):
            raise PayloadShapeError("Expected data for @module to be an object.")
        component_key = get_module_component_key(module_import.document_name)
        record.set_value(component_key, data.get(component_key))
        operation_key = get_module_operation_key(module_import.document_name)
        operation_reference = data.get(operation_key)
        record.set_value(operation_key, operation_reference)
        if operation_reference is not None:
            self._module_import_payloads.append(
                ModuleImportPayload(
                    data=data,
                    data_id=record.data_id,
                    operation_reference=operation_reference,
                    path=list(self._path),
                    type_name=record.type_name,
                    variables=self._variables,
                )
            )

    # =========================================================================
    # Fields and links
    # =========================================================================

    def _normalize_field(self, selection, record: Record, data: Any, context: TraversalContext) -> None:
        if not isinstance(data, dict):
            raise PayloadShapeError(f"Expected data for field `{selection.name}` to be an object.")
        response_key = selection.response_key
        storage_key = get_storage_key(selection, self._variables)
        field_value = data.get(response_key, _MISSING)

        if field_value is None or field_value is _MISSING:
            if field_value is _MISSING and not self._should_write_missing_as_null(
                context, record, response_key, storage_key
            ):
                return
            if isinstance(selection, ScalarField):
                self._validate_conflicting_scalar(record, storage_key, None)
            record.set_value(storage_key, None)
            return

        if isinstance(selection, ScalarField):
            self._validate_conflicting_scalar(record, storage_key, field_value)
            record.set_value(storage_key, field_value)
            return

        self._path.append(response_key)
        if selection.plural:
            self._normalize_plural_link(selection, record, storage_key, field_value, context)
        else:
            self._normalize_link(selection, record, storage_key, field_value, context)
        self._path.pop()

    def _resolve_data_id(
        self,
        field_value: Dict[str, Any],
        type_name: str,
        previous_id: Optional[str],
        parent_id: str,
        storage_key: str,
        index: Optional[int] = None,
    ) -> str:
        """Server identity, else the identity stored last time, else a client identity."""
        next_id = (
            self._get_data_id(field_value, type_name)
            or previous_id
            or generate_client_id(parent_id, storage_key, index)
        )
        if not isinstance(next_id, str):
            what = "id on field" if index is None else "id of elements of field"
            raise InvalidDataIDError(f"Expected {what} `{storage_key}` to be a string, got {next_id!r}.")
        return next_id

    def _get_or_create_record(self, data_id: str, type_name: str) -> Record:
        record = self._record_source.get(data_id)
        if record is None:
            record = Record(data_id, type_name)
            self._record_source.set(data_id, record)
        elif self._diagnostics.enabled:
            self._validate_record_type(record, type_name)
        return record

    def _normalize_link(
        self,
        field: LinkedField,
        record: Record,
        storage_key: str,
        field_value: Any,
        context: TraversalContext,
    ) -> None:
        if not isinstance(field_value, dict):
            raise PayloadShapeError(f"Expected data for field `{storage_key}` to be an object.")
        type_name = field.concrete_type or self._get_record_type(field_value)
        next_id = self._resolve_data_id(
            field_value,
            type_name,
            record.get_linked_record_id(storage_key),
            record.data_id,
            storage_key,
        )
        self._validate_conflicting_link(record, storage_key, next_id)
        record.set_linked_record_id(storage_key, next_id)
        next_record = self._get_or_create_record(next_id, type_name)
        self._traverse_selections(field, next_record, field_value, context)

    def _normalize_plural_link(
        self,
        field: LinkedField,
        record: Record,
        storage_key: str,
        field_value: Any,
        context: TraversalContext,
    ) -> None:
        if not isinstance(field_value, list):
            raise PayloadShapeError(f"Expected data for field `{storage_key}` to be an array of objects.")
        prev_ids = record.get_linked_record_ids(storage_key)
        next_ids: List[Optional[str]] = []
        for index, item in enumerate(field_value):
            if item is None:
                next_ids.append(None)
                continue
            self._path.append(str(index))
            if not isinstance(item, dict):
                raise PayloadShapeError(f"Expected elements for field `{storage_key}` to be objects.")
            type_name = field.concrete_type or self._get_record_type(item)
            prev_id = prev_ids[index] if prev_ids is not None and index < len(prev_ids) else None
            next_id = self._resolve_data_id(item, type_name, prev_id, record.data_id, storage_key, index)
            next_ids.append(next_id)
            next_record = self._get_or_create_record(next_id, type_name)
            self._validate_conflicting_link(record, storage_key, next_id, index)
            self._traverse_selections(field, next_record, item, context)
            self._path.pop()
        record.set_linked_record_ids(storage_key, next_ids)

    def _normalize_actor_change(
        self,
        selection: ActorChange,
        record: Record,
        data: Any,
        context: TraversalContext,
    ) -> None:
        field = selection.linked_field
        if not isinstance(data, dict):
            raise PayloadShapeError(f"Expected data for field `{field.name}` to be an object.")
        response_key = field.response_key
        storage_key = get_storage_key(field, self._variables)
        field_value = data.get(response_key, _MISSING)

        if field_value is None or field_value is _MISSING:
            if field_value is _MISSING and not self._should_write_missing_as_null(
                context, record, response_key, storage_key
            ):
                return
            record.set_value(storage_key, None)
            return

        actor_identifier = get_actor_identifier_from_payload(field_value)
        if actor_identifier is None:
            self._report(
                DiagnosticKind.MISSING_FIELD,
                f"Payload did not contain an actor identifier for field `{response_key}: {storage_key}`.",
                data_id=record.data_id,
                storage_key=storage_key,
                path=list(self._path),
            )
            record.set_value(storage_key, None)
            return

        type_name = field.concrete_type or self._get_record_type(field_value)
        next_id = self._resolve_data_id(
            field_value,
            type_name,
            record.get_linked_record_id(storage_key),
            record.data_id,
            storage_key,
        )
        record.set_actor_linked_record_id(storage_key, actor_identifier, next_id)
        self._actor_payloads.append(
            ActorPayload(
                data=field_value,
                data_id=next_id,
                path=[*self._path, response_key],
                type_name=type_name,
                variables=self._variables,
                node=field,
                actor_identifier=actor_identifier,
            )
        )

    # =========================================================================
    # Consistency checks (advisory)
    # =========================================================================

    def _validate_record_type(self, record: Record, type_name: str) -> None:
        """Same identity, different type: the server reused an id across entities."""
        data_id = record.data_id
        if (is_client_id(data_id) and data_id != ROOT_ID) or record.type_name == type_name:
            return
        self._report(
            DiagnosticKind.TYPE_MISMATCH,
            f"Invalid record `{data_id}`. Expected {TYPENAME_KEY} to be consistent, but the record "
            f"was assigned conflicting types `{record.type_name}` and `{type_name}`. The server likely "
            "violated the globally unique id requirement by returning the same id for different objects.",
            data_id=data_id,
            previous_type=record.type_name,
            next_type=type_name,
        )

    def _validate_conflicting_scalar(self, record: Record, storage_key: str, value: Any) -> None:
        if not self._diagnostics.enabled or storage_key == TYPENAME_KEY:
            return
        slot = (record.data_id, storage_key)
        if slot in self._written_scalars and not _same_value(self._written_scalars[slot], value):
            previous_value = self._written_scalars[slot]
            self._report(
                DiagnosticKind.CONFLICTING_SCALAR,
                f"Invalid record. The record contains two instances of the same id: `{record.data_id}` "
                f"with conflicting field, {storage_key} and its values: {previous_value!r} and {value!r}. "
                "If two fields are different but share the same id, one field will overwrite the other.",
                data_id=record.data_id,
                storage_key=storage_key,
                previous_value=previous_value,
                next_value=value,
            )
        self._written_scalars[slot] = value

    def _validate_conflicting_link(
        self,
        record: Record,
        storage_key: str,
        next_id: str,
        index: Optional[int] = None,
    ) -> None:
        if not self._diagnostics.enabled:
            return
        slot = (record.data_id, storage_key, index)
        previous_id = self._written_links.get(slot)
        if previous_id is not None and previous_id != next_id:
            self._report(
                DiagnosticKind.CONFLICTING_LINK,
                f"Invalid record. The record contains references to the conflicting field, {storage_key} "
                f"and its id values: {previous_id} and {next_id}. The record the field points to must "
                "remain consistent or one field will overwrite the other.",
                data_id=record.data_id,
                storage_key=storage_key,
                index=index,
                previous_id=previous_id,
                next_id=next_id,
            )
        self._written_links[slot] = next_id
