"""
Active-session state machine.

The engine owns the single in-progress WorkoutSession: it starts sessions,
moves the cursor through the block list, records logs, swaps and skips, and
finally completes or cancels. After every mutation the session is
snapshotted to the store so that an interrupted process resumes at the
exact cursor.

Only one session can be active. ``start`` while a session is active
replaces it (last write wins); with a single local user there is no other
writer to arbitrate against.
"""

import copy
import dataclasses
import logging
import uuid
import warnings
from datetime import datetime
from enum import Enum
from typing import Callable, Sequence

from ..io.history_store import HistoryStore
from ..io.kv_store import StorageFailure
from .catalog import WorkoutTemplate
from .config import CARDIO_TYPE_LABELS, DEFAULT_SESSION_NAME, FREEFORM_SESSION_NAME
from .models import (
    Block,
    CardioDescriptor,
    Cursor,
    ExerciseLog,
    ExerciseRef,
    SlotKey,
    WorkoutSession,
    _validate_effort,
)

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SessionState(str, Enum):
    NO_SESSION = "no_session"
    ACTIVE = "active"
    COMPLETING = "completing"


class InvalidState(Exception):
    """Raised when an operation is not allowed in the current state. Nothing was changed."""

    pass


class DataIntegrityWarning(UserWarning):
    """A persisted position was out of range and has been clamped or dropped."""

    pass


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _new_id() -> str:
    return uuid.uuid4().hex


def clamp_cursor(cursor: Cursor, blocks: Sequence[Block] | None) -> Cursor:
    """
    Clamp ``cursor`` into the current block list.

    Empty blocks hold no position, so a cursor on one moves to the nearest
    following non-empty block (or the nearest preceding one). With no
    exercises at all the cursor is (0, 0).
    """
    if not blocks:
        return Cursor()
    non_empty = [i for i, b in enumerate(blocks) if b.exercises]
    if not non_empty:
        return Cursor()

    b = min(max(cursor.block_index, 0), len(blocks) - 1)
    if not blocks[b].exercises:
        later = [i for i in non_empty if i > b]
        b = later[0] if later else non_empty[-1]
        # Landing on a different block: start of a later one, end of an earlier one
        e = 0 if later else len(blocks[b].exercises) - 1
        return Cursor(b, e)

    e = min(max(cursor.exercise_index, 0), len(blocks[b].exercises) - 1)
    return Cursor(b, e)


class SessionEngine:
    """
    State machine for the active workout session.

    States: NO_SESSION → ACTIVE (start) → COMPLETING (begin_completion,
    a review step that is not persisted) → NO_SESSION (complete or cancel).

    Storage write failures never abort an operation: the in-memory session
    stays authoritative and the save is retried on the next mutation or on
    ``flush()``.
    """

    def __init__(
        self,
        store: HistoryStore,
        clock: Clock | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Persistence gateway for snapshots and history
            clock: Returns the current time (default: local, timezone-aware)
            id_factory: Returns a new unique session id (default: uuid4 hex)
        """
        self.store = store
        self._clock = clock or _local_now
        self._new_id = id_factory or _new_id
        self._session: WorkoutSession | None = None
        self._completing = False
        self._dirty = False
        self._pending: list[WorkoutSession] = []

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def session(self) -> WorkoutSession | None:
        return self._session

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.NO_SESSION
        if self._completing:
            return SessionState.COMPLETING
        return SessionState.ACTIVE

    @property
    def cursor(self) -> Cursor:
        """
        Current position, re-checked against the current blocks.

        An out-of-range stored cursor is clamped, with a DataIntegrityWarning.
        """
        if self._session is None:
            return Cursor()
        stored = self._session.cursor
        clamped = clamp_cursor(stored, self._session.blocks)
        if clamped != stored:
            warnings.warn(
                f"cursor {tuple(stored)} out of range for session "
                f"{self._session.session_id}; clamped to {tuple(clamped)}",
                DataIntegrityWarning,
                stacklevel=2,
            )
            self._session.cursor = clamped
            self._dirty = True
        return clamped

    @property
    def has_pending_writes(self) -> bool:
        return self._dirty or bool(self._pending)

    def current_block(self) -> Block | None:
        if self._session is None or not self._session.blocks:
            return None
        return self._session.blocks[self.cursor.block_index]

    def current_exercise(self) -> ExerciseRef | None:
        """Template entry at the cursor (None for free-form or empty sessions)."""
        block = self.current_block()
        if block is None or not block.exercises:
            return None
        return block.exercises[self.cursor.exercise_index]

    def current_exercise_id(self) -> str | None:
        """Exercise id to perform at the cursor, with substitutions applied."""
        if self._session is None or self.current_exercise() is None:
            return None
        return self._session.effective_exercise_id(self.cursor.slot)

    def effective_exercise_id(self, block_index: int, exercise_index: int) -> str:
        session = self._require_blocks()
        slot = SlotKey(block_index, exercise_index)
        if not session.slot_exists(slot):
            raise InvalidState(f"No exercise at block {block_index}, position {exercise_index}")
        return session.effective_exercise_id(slot)

    def progress(self) -> tuple[int, int]:
        """(slots before the cursor, total slots) for block-based sessions."""
        if self._session is None or not self._session.blocks:
            return 0, 0
        cursor = self.cursor
        done = sum(
            1 for slot in self._session.iter_slots()
            if (slot.block_index, slot.exercise_index) < (cursor.block_index, cursor.exercise_index)
        )
        return done, self._session.total_slots

    def elapsed_seconds(self) -> int:
        if self._session is None:
            return 0
        return self._elapsed(self._session)

    def is_at_last_exercise(self) -> bool:
        """True when ``advance()`` has nowhere left to go."""
        if self._session is None or not self._session.blocks:
            return False
        return self._next_position(self.cursor) is None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def resume(self) -> WorkoutSession | None:
        """
        Restore the active session from its snapshot (call once at startup).

        Unreadable snapshots count as nothing to resume. Positions that no
        longer fit the stored blocks are clamped or dropped with a
        DataIntegrityWarning.
        """
        session = self.store.load_active()
        if session is None:
            return None
        if session.is_completed:
            LOGGER.warning("discarding completed session %s found in active slot", session.session_id)
            self._session = None
            self._persist()
            return None

        self._session = session
        self._completing = False
        self._drop_stale_slots(warn=True)
        _ = self.cursor  # clamp now, warning if needed
        if self._dirty:
            self._persist()
        return session

    def start(
        self,
        blocks: Sequence[Block] | None = None,
        cardio: CardioDescriptor | None = None,
        name: str | None = None,
        template_id: str | None = None,
    ) -> WorkoutSession:
        """
        Start a new session, replacing any active one.

        Pass ``blocks`` for a structured workout, ``cardio`` for a cardio
        session, or neither for a free-form quick workout.

        Raises:
            ValueError: If both blocks and cardio are given
        """
        if blocks is not None and cardio is not None:
            raise ValueError("A session has either blocks or a cardio descriptor, not both")

        if self._session is not None:
            LOGGER.info("replacing active session %s", self._session.session_id)

        if name is None:
            if cardio is not None:
                name = CARDIO_TYPE_LABELS.get(cardio.cardio_type, cardio.cardio_type)
            elif blocks is not None:
                name = DEFAULT_SESSION_NAME
            else:
                name = FREEFORM_SESSION_NAME

        self._session = WorkoutSession(
            session_id=self._new_id(),
            name=name,
            started_at=self._now_iso(),
            blocks=copy.deepcopy(list(blocks)) if blocks is not None else None,
            cardio=copy.deepcopy(cardio),
            template_id=template_id,
        )
        self._session.cursor = clamp_cursor(Cursor(), self._session.blocks)
        self._completing = False
        self._persist()
        return self._session

    def start_template(self, template: WorkoutTemplate) -> WorkoutSession:
        """Start a session from a catalog template (blocks are copied)."""
        return self.start(blocks=template.blocks, name=template.name, template_id=template.template_id)

    def begin_completion(self) -> None:
        """Enter the review step before ``complete``."""
        self._require_session()
        self._completing = True

    def resume_editing(self) -> None:
        """Leave the review step and return to the active workout."""
        self._require_session()
        self._completing = False

    def complete(self, effort: int | None = None, distance: float | None = None) -> WorkoutSession:
        """
        Finalize the active session and append it to history.

        Args:
            effort: Overall effort rating 1-10
            distance: Distance in km (cardio sessions only)

        Returns:
            The completed session

        Raises:
            InvalidState: If no session is active
            ValueError: If effort or distance is invalid
        """
        session = self._require_session()
        _validate_effort(effort)
        cardio = session.cardio
        if distance is not None:
            if cardio is None:
                raise ValueError("distance can only be recorded for cardio sessions")
            cardio = CardioDescriptor(cardio_type=cardio.cardio_type, distance=distance)

        finalized = dataclasses.replace(
            session,
            completed_at=self._now_iso(),
            total_duration=self._elapsed(session),
            effort=effort if effort is not None else session.effort,
            cardio=cardio,
            cursor=Cursor(),
        )

        self._session = None
        self._completing = False
        self._pending.append(finalized)
        self._persist()
        return finalized

    def cancel(self) -> None:
        """Discard the active session without writing history. Always succeeds."""
        if self._session is not None:
            LOGGER.info("cancelled session %s", self._session.session_id)
        self._session = None
        self._completing = False
        self._persist()

    def flush(self) -> bool:
        """
        Retry any storage writes that failed earlier.

        The CLI calls this before exit.

        Returns:
            True if nothing is left unsaved
        """
        if self.has_pending_writes:
            self._persist()
        return not self.has_pending_writes

    # ------------------------------------------------------------------
    # Logging, swaps, skips
    # ------------------------------------------------------------------

    def log_exercise(
        self,
        weight: float | None = None,
        reps: int | None = None,
        duration: int | None = None,
        effort: int | None = None,
        notes: str | None = None,
        exercise_id: str | None = None,
    ) -> ExerciseLog:
        """
        Record the exercise at the cursor (or ``exercise_id`` in free-form sessions).

        Block-based sessions always log the effective id for the cursor
        slot; pass ``exercise_id`` only to confirm it.

        Raises:
            InvalidState: No session, no exercises, or every slot already logged
            ValueError: Invalid values, or a free-form log without an id
        """
        session = self._require_session()

        slot: SlotKey | None = None
        if session.is_block_based:
            if session.total_slots == 0:
                raise InvalidState("Session has no exercises to log")
            if len(session.logs) >= session.total_slots:
                raise InvalidState(
                    f"All {session.total_slots} exercise slots are already logged"
                )
            slot = self.cursor.slot
            effective = session.effective_exercise_id(slot)
            if exercise_id is not None and exercise_id != effective:
                raise ValueError(
                    f"Exercise at the cursor is {effective!r}; swap it before logging {exercise_id!r}"
                )
            exercise_id = effective
        elif not exercise_id:
            raise ValueError("Free-form sessions need an exercise_id for each log")

        log = ExerciseLog(
            exercise_id=exercise_id,
            completed_at=self._now_iso(),
            weight=weight,
            reps=reps,
            duration=duration,
            effort=effort,
            notes=notes,
            slot=slot,
        )

        session.logs.append(log)
        if slot is not None and session.skipped and slot in session.skipped:
            session.skipped.remove(slot)
        self._completing = False
        self._persist()
        return log

    def swap_exercise(self, block_index: int, exercise_index: int, new_id: str) -> None:
        """
        Substitute the exercise performed at a slot.

        Only the substitution map changes; logs already recorded keep the id
        they were logged with. Swapping back to the template exercise removes
        the substitution.

        Raises:
            InvalidState: No session, or the slot does not exist
            ValueError: Empty exercise id
        """
        session = self._require_blocks()
        if not new_id:
            raise ValueError("new exercise id must be non-empty")
        slot = SlotKey(block_index, exercise_index)
        if not session.slot_exists(slot):
            raise InvalidState(f"No exercise at block {block_index}, position {exercise_index}")

        if new_id == session.template_exercise_id(slot):
            session.substitutions.pop(slot, None)
        else:
            session.substitutions[slot] = new_id
        self._completing = False
        self._persist()

    def skip(self) -> bool:
        """
        Mark the exercise at the cursor as skipped and advance.

        Returns:
            Whatever ``advance()`` returns

        Raises:
            InvalidState: No block-based session
        """
        session = self._require_blocks()
        if session.total_slots:
            self._record_skip(self.cursor.slot)
        return self.advance()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def advance(self) -> bool:
        """
        Move to the next exercise, crossing into the next block at the end of one.

        At the last exercise of the last block the cursor stays put; the
        caller decides whether to complete. Leaving an exercise that has no
        log records it as skipped.

        Returns:
            True if the cursor moved

        Raises:
            InvalidState: If no session is active
        """
        session = self._require_session()
        if not session.blocks:
            return False
        here = self.cursor
        target = self._next_position(here)
        if target is None:
            return False
        self._record_skip(here.slot, persist=False)
        self._move(target)
        return True

    def retreat(self) -> bool:
        """
        Move to the previous exercise.

        From the first exercise of a block the cursor goes to the last
        exercise of the previous non-empty block, looked up in the blocks as
        they are now (they may have been edited mid-session).

        Returns:
            True if the cursor moved

        Raises:
            InvalidState: If no session is active
        """
        session = self._require_session()
        if not session.blocks:
            return False
        target = self._previous_position(self.cursor)
        if target is None:
            return False
        self._move(target)
        return True

    def jump_to(self, block_index: int, exercise_index: int) -> None:
        """
        Place the cursor on a specific slot.

        Raises:
            InvalidState: No block-based session, or the slot does not exist
        """
        session = self._require_blocks()
        slot = SlotKey(block_index, exercise_index)
        if not session.slot_exists(slot):
            raise InvalidState(f"No exercise at block {block_index}, position {exercise_index}")
        self._move(Cursor(block_index, exercise_index))

    def update_blocks(self, new_blocks: Sequence[Block]) -> None:
        """
        Replace the block list mid-session.

        Logs are untouched. The cursor is clamped into the new layout, and
        substitutions or skips for slots that no longer exist are dropped.

        Raises:
            InvalidState: If no session is active
        """
        session = self._require_session()
        if session.cardio is not None:
            raise InvalidState("Cardio sessions have no blocks to edit")
        session.blocks = copy.deepcopy(list(new_blocks))
        session.cursor = clamp_cursor(session.cursor, session.blocks)
        self._drop_stale_slots(warn=False)
        self._completing = False
        self._persist()

    def add_exercise(self, block_index: int, ref: ExerciseRef, position: int | None = None) -> SlotKey:
        """
        Insert an exercise into a block of the active session.

        Substitutions, skips, logged slots and the cursor after the insertion
        point shift with it, so they keep referring to the same exercises.

        Args:
            block_index: Block to insert into
            ref: Exercise entry to insert (copied)
            position: Index inside the block (default: append)

        Returns:
            The slot of the new exercise

        Raises:
            InvalidState: No block-based session, or the block/position does not exist
        """
        session = self._require_blocks()
        blocks = session.blocks or []
        if not 0 <= block_index < len(blocks):
            raise InvalidState(f"No block {block_index}")
        exercises = blocks[block_index].exercises
        if position is None:
            position = len(exercises)
        if not 0 <= position <= len(exercises):
            raise InvalidState(f"No position {position} in block {block_index}")

        exercises.insert(position, copy.deepcopy(ref))
        self._shift_slots(session, block_index, position, 1)
        session.cursor = clamp_cursor(session.cursor, session.blocks)
        self._completing = False
        self._persist()
        return SlotKey(block_index, position)

    def remove_exercise(self, block_index: int, exercise_index: int) -> ExerciseRef:
        """
        Remove an exercise that has not been logged from the active session.

        A cursor on the removed exercise moves to the one that took its place,
        or to the nearest remaining exercise when none did.

        Returns:
            The removed entry

        Raises:
            InvalidState: No block-based session, no such slot, or the slot is logged
        """
        session = self._require_blocks()
        slot = SlotKey(block_index, exercise_index)
        if not session.slot_exists(slot):
            raise InvalidState(f"No exercise at block {block_index}, position {exercise_index}")
        if any(log.slot == slot for log in session.logs):
            raise InvalidState("Cannot remove an exercise that has already been logged")

        removed = (session.blocks or [])[block_index].exercises.pop(exercise_index)
        session.substitutions.pop(slot, None)
        if session.skipped and slot in session.skipped:
            session.skipped.remove(slot)
        self._shift_slots(session, block_index, exercise_index + 1, -1)
        session.cursor = clamp_cursor(session.cursor, session.blocks)
        self._completing = False
        self._persist()
        return removed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_session(self) -> WorkoutSession:
        if self._session is None:
            raise InvalidState("No active session")
        return self._session

    def _require_blocks(self) -> WorkoutSession:
        session = self._require_session()
        if session.blocks is None:
            raise InvalidState("Session has no blocks")
        return session

    def _now_iso(self) -> str:
        return self._clock().isoformat(timespec="seconds")

    def _elapsed(self, session: WorkoutSession) -> int:
        now = self._clock()
        started = session.started
        if (started.tzinfo is None) != (now.tzinfo is None):
            # Mixed naive/aware stamps: compare wall-clock times
            now = now.replace(tzinfo=None)
            started = started.replace(tzinfo=None)
        return max(0, round((now - started).total_seconds()))

    def _next_position(self, here: Cursor) -> Cursor | None:
        blocks = self._session.blocks if self._session else None
        if not blocks:
            return None
        b, e = here
        if e + 1 < len(blocks[b].exercises):
            return Cursor(b, e + 1)
        for nb in range(b + 1, len(blocks)):
            if blocks[nb].exercises:
                return Cursor(nb, 0)
        return None

    def _previous_position(self, here: Cursor) -> Cursor | None:
        blocks = self._session.blocks if self._session else None
        if not blocks:
            return None
        b, e = here
        if e > 0:
            return Cursor(b, e - 1)
        for pb in range(b - 1, -1, -1):
            count = len(blocks[pb].exercises)
            if count:
                return Cursor(pb, count - 1)
        return None

    def _move(self, target: Cursor) -> None:
        self._require_session().cursor = target
        self._completing = False
        self._persist()

    def _record_skip(self, slot: SlotKey, persist: bool = True) -> None:
        session = self._session
        if session is None or session.skipped is None:
            return
        if any(log.slot == slot for log in session.logs) or slot in session.skipped:
            return
        session.skipped.append(slot)
        if persist:
            self._persist()

    @staticmethod
    def _shift_slots(session: WorkoutSession, block_index: int, start: int, delta: int) -> None:
        """Move slot references in ``block_index`` at or after ``start`` by ``delta``."""

        def shift(slot: SlotKey) -> SlotKey:
            if slot.block_index == block_index and slot.exercise_index >= start:
                return SlotKey(block_index, slot.exercise_index + delta)
            return slot

        session.substitutions = {shift(s): ex for s, ex in session.substitutions.items()}
        if session.skipped is not None:
            session.skipped = [shift(s) for s in session.skipped]
        for log in session.logs:
            if log.slot is not None:
                log.slot = shift(log.slot)
        session.cursor = Cursor(*shift(session.cursor.slot))

    def _drop_stale_slots(self, warn: bool) -> None:
        session = self._session
        if session is None:
            return
        stale = [slot for slot in session.substitutions if not session.slot_exists(slot)]
        for slot in stale:
            del session.substitutions[slot]
        if session.skipped:
            kept = [slot for slot in session.skipped if session.slot_exists(slot)]
            stale += [slot for slot in session.skipped if slot not in kept]
            session.skipped = kept
        if stale:
            self._dirty = True
            if warn:
                warnings.warn(
                    f"dropped {len(stale)} out-of-range slot reference(s) in session "
                    f"{session.session_id}",
                    DataIntegrityWarning,
                    stacklevel=3,
                )

    def _persist(self) -> None:
        """Write pending completions and the active snapshot; failures are retried later."""
        while self._pending:
            try:
                self.store.append_completed(self._pending[0])
            except StorageFailure as e:
                LOGGER.warning("completed session not saved yet, will retry: %s", e)
                self._dirty = True
                return
            self._pending.pop(0)

        try:
            self.store.save_active(self._session)
        except StorageFailure as e:
            LOGGER.warning("active session not saved, will retry: %s", e)
            self._dirty = True
            return
        self._dirty = False
