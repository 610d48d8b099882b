"""
Panel State Machine - one open calendar panel.

Turns inbound messages into at most one in-flight remote mutation and emits a
PanelSnapshot to the render callback after every applied message.

Modes:
    idle -> creating / editing    (RequestCreate, RequestEdit, double press)
    creating / editing -> submitting -> idle   (SubmitForm succeeded)
    submitting -> creating / editing           (SubmitForm failed, draft kept)
    creating / editing -> idle    (CancelForm)
    idle -> submitting -> idle     (DeleteItem, CompleteTask, ClearSchedule)

Messages are handled one at a time behind an asyncio.Lock, in arrival order.
While submitting, new messages are rejected outright; with
allow_reads_while_submitting, reads queue behind the submit instead.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import MAXYEAR, MINYEAR, date, tzinfo
from enum import StrEnum

from taskcal.config import PanelSettings
from taskcal.errors import ConfirmationRequired, NotFoundError, PanelBusy, RemoteError, ValidationError
from taskcal.integrations.facade import RemoteSyncFacade
from taskcal.observability import PanelContext, generate_panel_id
from taskcal.schedule.commands import (
    ConfirmCallback,
    clear_task_schedule,
    complete_task,
    create_task_event,
    delete_task_anywhere,
    load_items,
    set_task_schedule,
)
from taskcal.schedule.models import (
    EventSpec,
    FormDraft,
    ItemKind,
    RecurrenceTag,
    ScheduleSpec,
    TargetRef,
    UnifiedItem,
)
from taskcal.schedule.normalizer import (
    month_bounds,
    parse_freeform_date,
    parse_freeform_time,
    schedule_to_instant,
    today,
)

from .clicks import ClickDisambiguator
from .messages import (
    READ_MESSAGES,
    CancelForm,
    ClearSchedule,
    ClearSelection,
    CompleteTask,
    DeleteItem,
    Navigate,
    PanelMessage,
    PressDay,
    PressItem,
    Refresh,
    RequestCreate,
    RequestEdit,
    SelectDate,
    SubmitForm,
)
from .state import Notice, NoticeLevel, PanelMode, PanelSnapshot, PanelState

logger = logging.getLogger(__name__)

RenderCallback = Callable[[PanelSnapshot], Awaitable[None] | None]

_FORM_MODES = (PanelMode.CREATING, PanelMode.EDITING)

# Modes each message is accepted in. Refresh and Navigate take any mode the
# machine can be in while holding the lock.
_ALLOWED_IN: dict[type, tuple[PanelMode, ...]] = {
    Navigate: (PanelMode.IDLE, *_FORM_MODES),
    Refresh: (PanelMode.IDLE, *_FORM_MODES),
    SelectDate: (PanelMode.IDLE,),
    ClearSelection: (PanelMode.IDLE,),
    RequestCreate: (PanelMode.IDLE, *_FORM_MODES),
    RequestEdit: (PanelMode.IDLE, *_FORM_MODES),
    SubmitForm: _FORM_MODES,
    CancelForm: _FORM_MODES,
    DeleteItem: (PanelMode.IDLE,),
    CompleteTask: (PanelMode.IDLE,),
    ClearSchedule: (PanelMode.IDLE,),
    PressDay: (PanelMode.IDLE,),
    PressItem: (PanelMode.IDLE,),
}


class Outcome(StrEnum):
    """What happened to a message."""

    APPLIED = "applied"
    REJECTED = "rejected"  # not allowed in the current mode, or busy
    DISCARDED = "discarded"  # the panel was disposed before it finished


class PanelStateMachine:
    """State and transitions of one open panel."""

    def __init__(
        self,
        facade: RemoteSyncFacade,
        render: RenderCallback,
        confirm: ConfirmCallback | None = None,
        settings: PanelSettings | None = None,
        tz: tzinfo | None = None,
        panel_id: str | None = None,
    ):
        """
        Args:
            facade: Remote stores
            render: Called with a snapshot after every applied message
            confirm: Asks the user to confirm destructive actions. Without
                one, deletes are never performed.
            settings: Panel tunables. Defaults to PanelSettings().
            tz: Zone the user picks dates in. None = system local.
            panel_id: Correlation id for logs
        """
        self.facade = facade
        self.render = render
        self.confirm = confirm
        self.settings = settings or PanelSettings()
        self.tz = tz
        self.panel_id = panel_id or generate_panel_id()

        current = today(tz)
        self.state = PanelState(visible_year=current.year, visible_month=current.month)
        self._clicks = ClickDisambiguator(
            self.state.pending_clicks, self.settings.click_debounce_seconds
        )
        self._lock = asyncio.Lock()
        self._disposed = False
        self._background: set[asyncio.Task] = set()
        self._notice_timer: asyncio.TimerHandle | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def mode(self) -> PanelMode:
        return self.state.mode

    @property
    def disposed(self) -> bool:
        return self._disposed

    def snapshot(self) -> PanelSnapshot:
        return self.state.snapshot()

    async def open(self) -> Outcome:
        """Load the visible month and render the first snapshot."""
        with PanelContext(self.panel_id):
            logger.info(f"Opening panel at {self.state.visible_year}-{self.state.visible_month:02d}")
            return await self.handle(Refresh())

    def dispose(self) -> None:
        """
        Close the panel.

        Pending click timers and notice timers are cancelled. Results of calls
        still in flight are dropped when they arrive.
        """
        if self._disposed:
            return
        self._disposed = True
        self._clicks.cancel_all()
        if self._notice_timer is not None:
            self._notice_timer.cancel()
            self._notice_timer = None
        for task in list(self._background):
            task.cancel()
        with PanelContext(self.panel_id):
            logger.info("Panel disposed")

    # =========================================================================
    # Message entry point
    # =========================================================================

    async def handle(self, message: PanelMessage) -> Outcome:
        """
        Handle one inbound message.

        Returns:
            APPLIED, REJECTED or DISCARDED
        """
        with PanelContext(self.panel_id):
            name = type(message).__name__
            if self._disposed:
                logger.debug(f"Dropping {name}: panel disposed")
                return Outcome.DISCARDED

            try:
                self._check_busy(message)
            except PanelBusy as e:
                logger.info(str(e))
                return Outcome.REJECTED

            async with self._lock:
                if self._disposed:
                    return Outcome.DISCARDED
                if self.state.mode not in _ALLOWED_IN[type(message)]:
                    logger.info(f"Rejecting {name} in mode {self.state.mode}")
                    return Outcome.REJECTED

                logger.debug(f"Handling {name} in mode {self.state.mode}")
                return await self._dispatch(message)

    def _check_busy(self, message: PanelMessage) -> None:
        if self.state.mode != PanelMode.SUBMITTING:
            return
        if self.settings.allow_reads_while_submitting and isinstance(message, READ_MESSAGES):
            return
        raise PanelBusy(f"Rejecting {type(message).__name__}: a change is being saved")

    async def _dispatch(self, message: PanelMessage) -> Outcome:
        match message:
            case Navigate(month=month, year=year):
                return await self._navigate(year, month)
            case Refresh():
                return await self._refresh()
            case SelectDate(date=day):
                return await self._select_date(day)
            case ClearSelection():
                self.state.selected_date = None
                return await self._emit()
            case RequestCreate(date=day):
                return await self._request_create(day)
            case RequestEdit(target_ref=ref):
                return await self._request_edit(ref.to_ref())
            case SubmitForm():
                return await self._submit(message)
            case CancelForm():
                self._to_idle()
                return await self._emit()
            case DeleteItem(target_ref=ref):
                return await self._delete(ref.to_ref())
            case CompleteTask(target_ref=ref):
                return await self._complete(ref.to_ref())
            case ClearSchedule(target_ref=ref):
                return await self._clear_schedule(ref.to_ref())
            case PressDay(date=day):
                return await self._press_day(day)
            case PressItem(target_ref=ref):
                return await self._press_item(ref.to_ref())
        raise TypeError(f"Unhandled message {message!r}")

    # =========================================================================
    # Reads
    # =========================================================================

    async def _fetch_items(self) -> list[UnifiedItem]:
        """Every task plus the visible month's events, merged."""
        range_start, range_end = month_bounds(self.state.visible_year, self.state.visible_month, self.tz)
        return await load_items(
            self.facade, range_start, range_end, self.tz, self.settings.include_completed_tasks
        )

    async def _reload(self) -> bool:
        """
        Replace the items with a fresh fetch.

        On failure the old items stay and an error notice is set. Returns
        False when the panel was disposed during the fetch.
        """
        try:
            items = await self._fetch_items()
        except RemoteError as e:
            if self._disposed:
                return False
            logger.warning(f"Refresh failed ({e.reason}): {e}")
            self._set_notice(Notice(NoticeLevel.ERROR, f"Could not load items: {e}", hint=e.hint))
            return True

        if self._disposed:
            return False
        self.state.items = items
        return True

    async def _refresh(self) -> Outcome:
        if not await self._reload():
            return self._discarded("refresh")
        return await self._emit()

    async def _navigate(self, year: int, month: int) -> Outcome:
        if not 1 <= month <= 12:
            self._show_validation(ValidationError(f"Month must be 1-12, got {month}", field="month"))
            return await self._emit()
        if not MINYEAR < year < MAXYEAR:
            self._show_validation(
                ValidationError(f"Year must be {MINYEAR + 1}-{MAXYEAR - 1}, got {year}", field="year")
            )
            return await self._emit()

        previous = (self.state.visible_year, self.state.visible_month)
        self.state.visible_year, self.state.visible_month = year, month
        if not await self._reload():
            return self._discarded("navigate")
        logger.info(f"Navigated from {previous[0]}-{previous[1]:02d} to {year}-{month:02d}")
        return await self._emit()

    async def _select_date(self, day: date) -> Outcome:
        self.state.selected_date = None if self.state.selected_date == day else day
        return await self._emit()

    # =========================================================================
    # Gestures
    # =========================================================================

    async def _press_day(self, day: date) -> Outcome:
        if self._clicks.press(day.isoformat(), lambda: self._spawn(self.handle(SelectDate(date=day)))):
            return await self._request_create(day)
        return Outcome.APPLIED

    async def _press_item(self, ref: TargetRef) -> Outcome:
        if self._clicks.press(ref.key, lambda: self._spawn(self._select_item_date(ref))):
            return await self._request_edit(ref)
        return Outcome.APPLIED

    async def _select_item_date(self, ref: TargetRef) -> Outcome:
        item = self._find_item(ref)
        if item is None or item.due_date == self.state.selected_date:
            return Outcome.APPLIED
        return await self.handle(SelectDate(date=item.due_date))

    def _spawn(self, coro: Awaitable) -> None:
        if self._disposed:
            coro.close()
            return
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # =========================================================================
    # Forms
    # =========================================================================

    async def _request_create(self, day: date | None) -> Outcome:
        day = day or self.state.selected_date or today(self.tz)
        self.state.mode = PanelMode.CREATING
        self.state.target_ref = None
        self.state.form_draft = FormDraft(
            date_text=day.isoformat(),
            time_text=self.settings.default_form_time,
            is_all_day=False,
            item_kind=ItemKind.EVENT,
        )
        self.state.notice = None
        logger.info(f"Creating on {day}")
        return await self._emit()

    async def _request_edit(self, ref: TargetRef) -> Outcome:
        item = self._find_item(ref)
        if item is None:
            self._set_notice(Notice(NoticeLevel.WARNING, "That item is no longer on the calendar"))
            return await self._emit()

        # Prefer the loaded reference, which carries the owning list id
        if ref.list_id is None and ref.calendar_id is None:
            ref = item.source_ref

        time_text = ""
        if item.due_instant is not None:
            time_text = item.due_instant.astimezone(self.tz).strftime("%H:%M")

        self.state.mode = PanelMode.EDITING
        self.state.target_ref = ref
        self.state.form_draft = FormDraft(
            title=item.title,
            date_text=item.due_date.isoformat(),
            time_text=time_text,
            is_all_day=item.is_all_day,
            item_kind=ref.kind,
            recurrence=_known_recurrence(item.recurrence),
            notes=item.description or "",
        )
        self.state.notice = None
        logger.info(f"Editing {ref.key}")
        return await self._emit()

    def _find_item(self, ref: TargetRef) -> UnifiedItem | None:
        for item in self.state.items:
            if item.id == ref.id and item.source_ref.kind == ref.kind:
                return item
        return None

    def _to_idle(self) -> None:
        self.state.mode = PanelMode.IDLE
        self.state.pending_mode = None
        self.state.target_ref = None
        self.state.form_draft = None

    def _validate(self, mode: PanelMode, target: TargetRef | None, draft: FormDraft) -> ScheduleSpec:
        """
        Turn a draft into a schedule.

        Raises:
            ValidationError: On an empty title, an unreadable date or time,
                or a timed schedule for a date-only task
        """
        if not draft.title.strip():
            raise ValidationError("Title is required", field="title")

        day = parse_freeform_date(draft.date_text)
        if day is None:
            raise ValidationError(f"Unrecognized date: {draft.date_text!r}", field="date")

        if mode == PanelMode.EDITING and target is None:
            raise ValidationError("Nothing is being edited", field="target_ref")

        if draft.is_all_day:
            return ScheduleSpec.all_day(day, draft.recurrence)

        at = parse_freeform_time(draft.time_text)
        if at is None:
            raise ValidationError(f"Unrecognized time: {draft.time_text!r}", field="time")
        if mode == PanelMode.EDITING and target.kind == ItemKind.TASK:
            raise ValidationError("Tasks hold a date only; mark it all day", field="time")
        return ScheduleSpec.at(day, at, draft.recurrence)

    async def _submit(self, message: SubmitForm) -> Outcome:
        prior_mode = self.state.mode
        if message.mode is not None and message.mode != prior_mode:
            logger.info(f"Rejecting submit for {message.mode} while {prior_mode}")
            return Outcome.REJECTED

        target = message.target_ref.to_ref() if message.target_ref else self.state.target_ref
        draft = FormDraft(
            title=message.title,
            date_text=message.date,
            time_text=message.time,
            is_all_day=message.is_all_day,
            item_kind=message.item_kind,
            recurrence=message.recurrence,
            notes=message.notes,
        )

        try:
            schedule = self._validate(prior_mode, target, draft)
        except ValidationError as e:
            draft.errors[e.field or "form"] = str(e)
            self.state.form_draft = draft
            self._show_validation(e)
            return await self._emit()

        self.state.form_draft = draft
        self.state.target_ref = target
        self.state.mode = PanelMode.SUBMITTING
        self.state.pending_mode = prior_mode
        self.state.notice = None
        await self._emit()

        try:
            await self._write(prior_mode, target, draft, schedule)
        except NotFoundError as e:
            if self._disposed:
                return self._discarded("submit")
            logger.warning(f"Submit target vanished: {e}")
            self._to_idle()
            self._set_notice(Notice(NoticeLevel.WARNING, str(e)))
            if not await self._reload():
                return self._discarded("submit")
            return await self._emit()
        except RemoteError as e:
            if self._disposed:
                return self._discarded("submit")
            logger.error(f"Submit failed ({e.reason}): {e}")
            self.state.mode = prior_mode
            self.state.pending_mode = None
            self._set_notice(Notice(NoticeLevel.ERROR, f"Could not save: {e}", hint=e.hint))
            return await self._emit()
        except Exception as e:
            if self._disposed:
                return self._discarded("submit")
            logger.exception(f"Submit failed unexpectedly: {e}")
            self.state.mode = prior_mode
            self.state.pending_mode = None
            self._set_notice(Notice(NoticeLevel.ERROR, f"Could not save: {e}"))
            return await self._emit()

        if self._disposed:
            return self._discarded("submit")
        logger.info(f"Saved {draft.item_kind} {draft.title!r} on {schedule.date}")
        self._to_idle()
        self._set_notice(Notice(NoticeLevel.INFO, f"Saved {draft.title.strip()}"))
        if not await self._reload():
            return self._discarded("submit")
        return await self._emit()

    async def _write(
        self, mode: PanelMode, target: TargetRef | None, draft: FormDraft, schedule: ScheduleSpec
    ) -> None:
        """Route a validated draft to the right store call."""
        title = draft.title.strip()
        duration = self.settings.default_event_minutes

        if mode == PanelMode.CREATING:
            if draft.item_kind == ItemKind.TASK and schedule.is_all_day:
                lists = await self.facade.list_task_lists()
                if not lists:
                    raise RemoteError("There is no task list to add the task to")
                fields = {"title": title, "due": schedule_to_instant(schedule, self.tz)}
                if draft.notes:
                    fields["notes"] = draft.notes
                await self.facade.insert_task(lists[0].id, fields)
            elif draft.item_kind in (ItemKind.TASK, ItemKind.TASK_EVENT):
                # A task with a time of day lives in the calendar store
                await create_task_event(self.facade, title, schedule, draft.notes, duration)
            else:
                await self.facade.create_event(EventSpec(title, schedule, draft.notes, False, duration))
            return

        if target.kind == ItemKind.TASK:
            await set_task_schedule(
                self.facade, target, schedule, title, self.tz, duration, notes=draft.notes
            )
            return

        spec = EventSpec(
            title=title,
            schedule=schedule,
            description=draft.notes,
            is_task_tagged=target.kind == ItemKind.TASK_EVENT,
            duration_minutes=duration,
        )
        await self.facade.update_event(target.id, spec)

    # =========================================================================
    # Item actions
    # =========================================================================

    def _resolve(self, ref: TargetRef) -> tuple[TargetRef, str]:
        """Loaded reference and display title for `ref`."""
        item = self._find_item(ref)
        if item is not None and ref.list_id is None and ref.calendar_id is None:
            ref = item.source_ref
        return ref, item.title if item else ref.id

    async def _delete(self, ref: TargetRef) -> Outcome:
        ref, title = self._resolve(ref)

        if self.confirm is None:
            logger.info(f"Not deleting {ref.key}: no confirmation available")
            return Outcome.REJECTED
        if not await self.confirm(f"Delete {title}?"):
            logger.info(f"Delete of {ref.key} declined")
            return Outcome.REJECTED
        if self._disposed:
            return self._discarded("delete")

        async def remove() -> None:
            if ref.kind == ItemKind.TASK:
                await delete_task_anywhere(self.facade, ref)
            else:
                await self.facade.delete_event(ref.id)

        await self._start_action()
        return await self._item_action("delete", remove, f"Deleted {title}")

    async def _complete(self, ref: TargetRef) -> Outcome:
        ref, title = self._resolve(ref)
        if ref.kind != ItemKind.TASK:
            self._show_validation(ValidationError("Only tasks can be completed", field="target_ref"))
            return await self._emit()

        await self._start_action()
        return await self._item_action(
            "complete", lambda: complete_task(self.facade, ref), f"Completed {title}"
        )

    async def _clear_schedule(self, ref: TargetRef) -> Outcome:
        ref, title = self._resolve(ref)
        if ref.kind != ItemKind.TASK:
            self._show_validation(
                ValidationError("Only tasks have a due date to clear", field="target_ref")
            )
            return await self._emit()

        confirm = self.confirm

        async def confirm_then_start(prompt: str) -> bool:
            if not await confirm(prompt) or self._disposed:
                return False
            await self._start_action()
            return True

        return await self._item_action(
            "clear",
            lambda: clear_task_schedule(
                self.facade, ref, confirm_then_start if confirm else None, title
            ),
            f"Cleared the schedule of {title}",
        )

    async def _start_action(self) -> None:
        self.state.mode = PanelMode.SUBMITTING
        self.state.pending_mode = PanelMode.IDLE
        await self._emit()

    async def _item_action(
        self, action: str, call: Callable[[], Awaitable], done: str
    ) -> Outcome:
        """
        Run a mutation started from idle and return to idle with a notice.

        Whatever `call` raises, the panel leaves submitting. A declined
        confirmation inside `call` rejects the message without a render.
        """
        try:
            await call()
            notice = Notice(NoticeLevel.INFO, done)
        except ConfirmationRequired as e:
            if self._disposed:
                return self._discarded(action)
            logger.info(str(e))
            return Outcome.REJECTED
        except NotFoundError as e:
            logger.warning(f"Cannot {action}, target vanished: {e}")
            notice = Notice(NoticeLevel.WARNING, str(e))
        except RemoteError as e:
            logger.error(f"Cannot {action} ({e.reason}): {e}")
            notice = Notice(NoticeLevel.ERROR, f"Could not {action}: {e}", hint=e.hint)
        except Exception as e:
            logger.exception(f"Cannot {action}: {e}")
            notice = Notice(NoticeLevel.ERROR, f"Could not {action}: {e}")
        finally:
            if not self._disposed:
                self.state.mode = PanelMode.IDLE
                self.state.pending_mode = None

        if self._disposed:
            return self._discarded(action)
        self._set_notice(notice)
        if not await self._reload():
            return self._discarded(action)
        return await self._emit()

    # =========================================================================
    # Notices and rendering
    # =========================================================================

    def _set_notice(self, notice: Notice | None) -> None:
        if self._notice_timer is not None:
            self._notice_timer.cancel()
            self._notice_timer = None
        self.state.notice = notice

    def _show_validation(self, error: ValidationError) -> None:
        """Inline notice that clears itself after validation_notice_seconds."""
        notice = Notice(NoticeLevel.WARNING, str(error), field=error.field)
        self._set_notice(notice)
        loop = asyncio.get_running_loop()
        self._notice_timer = loop.call_later(
            self.settings.validation_notice_seconds, self._expire_notice, notice
        )

    def _expire_notice(self, notice: Notice) -> None:
        self._notice_timer = None
        if self._disposed or self.state.notice is not notice:
            return
        self.state.notice = None
        self._spawn(self._emit())

    async def _emit(self) -> Outcome:
        if self._disposed:
            return self._discarded("render")
        result = self.render(self.state.snapshot())
        if inspect.isawaitable(result):
            await result
        return Outcome.APPLIED

    def _discarded(self, action: str) -> Outcome:
        logger.info(f"Discarding {action} result: panel disposed")
        return Outcome.DISCARDED


def _known_recurrence(value: str | None) -> RecurrenceTag | None:
    if not value:
        return None
    try:
        return RecurrenceTag(value)
    except ValueError:
        return None
