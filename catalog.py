from typing import Dict, Iterable, List, Optional, Set

from loguru import logger

from config import (
    DuplicateIdentifier,
    EventDefinition,
    EventInstance,
    MissingParameter,
    Parameter,
    ParameterValue,
    Plan,
    Schema,
    UnknownEventType,
    UnresolvedEnvelopeReference,
)
from handlers import HANDLERS, EventHandler, EventKind, handler_for

SUPPORTED_TYPES = frozenset(kind.value for kind in EventKind)


def _duplicates(ids: Iterable[int]) -> List[int]:
    seen: Set[int] = set()
    dupes: List[int] = []
    for i in ids:
        if i in seen and i not in dupes:
            dupes.append(i)
        seen.add(i)
    return dupes


class EventCatalog:
    """
    Resolves event types against a schema document and the handler registry.

    The schema supplies parameter shapes and defaults; the registry supplies the
    semantics. A type must be present in both to be usable in a plan.
    """

    def __init__(self, schema: Schema):
        self.schema = schema
        self._definitions: Dict[str, EventDefinition] = {}
        for definition in schema.events:
            if definition.type in self._definitions:
                logger.warning(f"Schema defines event type '{definition.type}' more than once; keeping the last.")
            self._definitions[definition.type] = definition

        unsupported = [t for t in self._definitions if t not in SUPPORTED_TYPES]
        if unsupported:
            logger.debug(f"Schema event types without a simulation handler: {', '.join(sorted(unsupported))}")

    @property
    def types(self) -> List[str]:
        return [t for t in self._definitions if t in SUPPORTED_TYPES]

    def resolve(self, event_type: str) -> EventDefinition:
        definition = self._definitions.get(event_type)
        if definition is None:
            raise UnknownEventType(f"Unknown event type: '{event_type}'")
        handler_for(event_type)
        return definition

    def handler(self, event_type: str) -> EventHandler:
        self.resolve(event_type)
        return HANDLERS[EventKind(event_type)]

    @staticmethod
    def instantiate_defaults(definition: EventDefinition) -> List[Parameter]:
        """One parameter per definition entry, ids 0..n-1 in definition order."""
        return [
            Parameter(id=index, type=param.type, value=param.default)
            for index, param in enumerate(definition.parameters)
        ]

    def new_event(self, event_type: str, event_id: int, start_time: Optional[float] = None) -> EventInstance:
        definition = self.resolve(event_type)
        parameters = self.instantiate_defaults(definition)
        if start_time is not None:
            parameters = [
                p.model_copy(update={"value": start_time}) if p.type == "start_time" else p for p in parameters
            ]
        return EventInstance(
            id=event_id,
            type=event_type,
            title=definition.display_name or event_type,
            description=definition.description,
            parameters=parameters,
        )

    def validate(
        self,
        instance: EventInstance,
        definition: EventDefinition,
        envelope_names: Iterable[str],
    ) -> None:
        """Raise on the first structural problem with ``instance``."""
        handler = self.handler(instance.type)
        known_envelopes = set(envelope_names)
        label = f"event {instance.id} ({instance.type})"

        dupes = _duplicates(p.id for p in instance.parameters)
        if dupes:
            raise DuplicateIdentifier(f"Duplicate parameter ids in {label}: {dupes}")

        params = instance.parameter_map()
        missing = [name for name in handler.required if name not in params]
        if missing:
            raise MissingParameter(f"Missing in {label}: {', '.join(missing)}")

        declared = {p.type for p in definition.parameters} | set(handler.required) | {"end_time", "frequency_days"}
        extra = [name for name in params if name not in declared]
        if extra:
            logger.warning(f"Unexpected parameters in {label}: {', '.join(extra)}")

        self._check_envelopes(params, handler.envelope_params, handler.blank_envelopes_allowed, known_envelopes, label)

        dupes = _duplicates(u.id for u in instance.updating_events)
        if dupes:
            raise DuplicateIdentifier(f"Duplicate updating event ids in {label}: {dupes}")

        for upd in instance.updating_events:
            upd_label = f"updating event {upd.id} ({upd.type}) under {label}"
            if definition.updating_definition(upd.type) is None:
                raise UnknownEventType(f"Unknown updating event type: '{upd.type}' under '{instance.type}'")
            upd_dupes = _duplicates(p.id for p in upd.parameters)
            if upd_dupes:
                raise DuplicateIdentifier(f"Duplicate parameter ids in {upd_label}: {upd_dupes}")
            if upd.effective_start is None:
                raise MissingParameter(f"Missing in {upd_label}: start_time")
            upd_params = upd.parameter_map()
            missing = [name for name in handler.required_for_update(upd.type) if name not in upd_params]
            if missing:
                raise MissingParameter(f"Missing in {upd_label}: {', '.join(missing)}")
            action = handler.actions.get(upd.type)
            if action is not None:
                self._check_envelopes(
                    upd_params, action.envelope_params, action.blank_envelopes_allowed, known_envelopes, upd_label
                )

    @staticmethod
    def _check_envelopes(
        params: Dict[str, ParameterValue],
        envelope_params: Iterable[str],
        blank_allowed: Iterable[str],
        known: Set[str],
        label: str,
    ) -> None:
        for name in envelope_params:
            value = str(params.get(name, "")).strip()
            if not value and name in blank_allowed:
                continue
            if value not in known:
                raise UnresolvedEnvelopeReference(
                    f"Parameter '{name}' of {label} names unknown envelope '{value}'"
                )

    def validate_plan(self, plan: Plan) -> None:
        names = plan.envelope_names()
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise DuplicateIdentifier(f"Duplicate envelope names: {dupes}")

        dupes = _duplicates(e.id for e in plan.events)
        if dupes:
            raise DuplicateIdentifier(f"Duplicate event ids: {dupes}")

        for instance in plan.events:
            self.validate(instance, self.resolve(instance.type), names)
        logger.debug(f"Validated {len(plan.events)} events against {len(self._definitions)} schema definitions")
