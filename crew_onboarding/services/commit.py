from __future__ import annotations

import logging

from ..logging.error_log import ErrorLogBuffer
from ..models.commit_result import CommitOutcome
from ..models.entities import EntityType
from ..models.error_record import SERVER_ERROR, SERVER_WARNING, ErrorRecord
from ..session.context import OnboardingSession
from .remote import BulkCreateClient, ServerError, error_messages, normalize_error_payload

"""Commit orchestrator.

commit(entity_type):
1. unsaved = draft records whose natural key is not in the saved-key set;
   nothing unsaved -> success without a remote call
2. bulk-create the unsaved records
3. success: record the keys of the created records as saved, clear the
   entity's errors, surface response warnings as non-blocking entries
4. failure: normalise the error payload into the entity's error set and
   leave the draft and the saved keys exactly as they were

Only one commit per entity type may be in flight; a second call raises
CommitInProgressError.
"""

__all__ = [
    "CommitInProgressError",
    "CommitOrchestrator",
]

logger = logging.getLogger(__name__)

SERVER_SOURCE = "<SERVER>"


class CommitInProgressError(Exception):
    """A commit for this entity type has not resolved yet."""


class CommitOrchestrator:
    def __init__(
        self,
        session: OnboardingSession,
        client: BulkCreateClient,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.session = session
        self.client = client
        self.error_log = error_log
        self.history: list[CommitOutcome] = []
        self._in_flight: set[EntityType] = set()

    def is_in_flight(self, entity_type: EntityType) -> bool:
        return entity_type in self._in_flight

    @property
    def busy(self) -> bool:
        return bool(self._in_flight)

    def commit(self, entity_type: EntityType) -> CommitOutcome:
        if entity_type in self._in_flight:
            raise CommitInProgressError(f"a {entity_type.value} commit is already in progress")

        session = self.session
        schema = session.registry.get(entity_type)
        unsaved = session.saved_keys.unsaved(entity_type, session.drafts[entity_type])
        if not unsaved:
            logger.debug("all %s already saved", schema.plural)
            return self._record(CommitOutcome(entity_type=entity_type, success=True, remote_called=False))

        payloads = [schema.to_payload(r) for r in unsaved]
        self._in_flight.add(entity_type)
        try:
            response = self.client.bulk_create(entity_type, payloads)
        except (ServerError, OSError) as e:
            fallback = str(e) or f"An unexpected error occurred while saving {schema.plural}"
            messages = error_messages(normalize_error_payload(getattr(e, "payload", None), fallback))
            session.errors.set_errors(entity_type, messages)
            logger.error("saving %s failed: %s", schema.plural, "; ".join(messages))
            self._log(entity_type, SERVER_ERROR, messages)
            return self._record(
                CommitOutcome(
                    entity_type=entity_type,
                    success=False,
                    remote_called=True,
                    attempted=len(payloads),
                    errors=tuple(messages),
                )
            )
        finally:
            self._in_flight.discard(entity_type)

        created_keys = {schema.key_from_payload(r) for r in response.created_records}
        session.saved_keys.add_many(entity_type, created_keys)
        if response.skipped_count and response.created_count + response.skipped_count == len(unsaved):
            # every record not created was skipped as already present on the backend
            session.saved_keys.add_many(
                entity_type,
                (k for k in (schema.natural_key(r) for r in unsaved) if k not in created_keys),
            )

        session.errors.clear(entity_type)
        logger.info("%d %s saved", response.created_count, schema.plural)
        if response.skipped_count:
            logger.info("%d %s skipped (duplicates)", response.skipped_count, schema.plural)
        if response.warnings:
            session.errors.set_warnings(entity_type, response.warnings)
            for warning in response.warnings:
                logger.warning("%s: %s", schema.plural, warning)
            self._log(entity_type, SERVER_WARNING, response.warnings)

        return self._record(
            CommitOutcome(
                entity_type=entity_type,
                success=True,
                remote_called=True,
                attempted=len(payloads),
                created=response.created_count,
                skipped=response.skipped_count,
                warnings=tuple(response.warnings),
            )
        )

    def _record(self, outcome: CommitOutcome) -> CommitOutcome:
        self.history.append(outcome)
        return outcome

    def _log(self, entity_type: EntityType, error_type: str, messages: list[str]) -> None:
        if self.error_log is None:
            return
        for message in messages:
            self.error_log.append(
                ErrorRecord.create(
                    file=SERVER_SOURCE,
                    entity=entity_type.value,
                    row=-1,
                    error_type=error_type,
                    message=message,
                )
            )
