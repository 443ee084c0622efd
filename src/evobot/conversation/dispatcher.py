from __future__ import annotations

from ..logging import get_logger
from ..transport import Transport
from .cancel import CancelToken
from .context import HandlerContext
from .model import (
    END,
    STAY,
    Advance,
    End,
    InboundEvent,
    OperationCancelled,
    SelectionLost,
    SessionDataError,
    Stay,
    Transition,
    TransitionError,
)
from .registry import Handler, Registry, Wizard
from .session import SessionStore
from .ui import Prompter

logger = get_logger(__name__)

START_OVER_TEXT = "An internal error occurred. Please start over with /{command}."


class Dispatcher:
    """Routes inbound events to wizard step handlers and applies transitions.

    Events for one user must be fed in order, one at a time; events for
    different users may be dispatched concurrently.
    """

    def __init__(
        self,
        registry: Registry,
        store: SessionStore,
        transport: Transport,
    ) -> None:
        self._registry = registry
        self._store = store
        self._prompter = Prompter(transport, store)
        self._tokens: dict[int, CancelToken] = {}

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def registry(self) -> Registry:
        return self._registry

    async def dispatch(self, event: InboundEvent) -> Transition | None:
        """Handle one event.

        Returns:
            The transition that was applied, or None when the event was not
            for any wizard and nothing happened.

        Raises:
            TransitionError: A handler advanced to a state its wizard does
                not declare.
            Exception: Whatever a handler raised, other than
                SessionDataError or SelectionLost; the session is left as it
                was.
        """
        user_id = event.user_id
        wizard_name, state = await self._store.position(user_id)

        if wizard_name is not None and state is not None:
            wizard = self._registry.get(wizard_name)
            handler = self._match(self._registry.lookup(wizard_name, state), event)
            if handler is not None:
                return await self._run(wizard, state, handler, event)
            entry = self._registry.entry_for(event)
            if entry is None:
                logger.debug(
                    "dispatch.unmatched",
                    user_id=user_id,
                    wizard=wizard_name,
                    state=state,
                    kind=event.kind.value,
                )
                return None
            logger.info(
                "dispatch.switch_wizard",
                user_id=user_id,
                from_wizard=wizard_name,
                to_wizard=entry.name,
            )
            await self._end(wizard, user_id)
            return await self._enter(entry, event)

        entry = self._registry.entry_for(event)
        if entry is None:
            return None
        if await self._store.has_session(user_id):
            await self._store.clear(user_id)
        return await self._enter(entry, event)

    async def request_cancel(self, event: InboundEvent) -> bool:
        """Signal the user's running handler if `event` is a cancel exit."""
        wizard_name, state = await self._store.position(event.user_id)
        if wizard_name is None or state is None:
            return False
        if self._match(self._registry.exits(wizard_name), event) is None:
            return False
        token = self._tokens.get(event.user_id)
        if token is None or token.cancelled:
            return False
        logger.info("cancel.requested", user_id=event.user_id, wizard=wizard_name)
        token.cancel()
        return True

    async def _enter(self, wizard: Wizard, event: InboundEvent) -> Transition:
        self._tokens[event.user_id] = CancelToken()
        logger.info("wizard.entered", user_id=event.user_id, wizard=wizard.name)
        try:
            return await self._run(wizard, None, wizard.entry, event)
        except Exception:
            self._tokens.pop(event.user_id, None)
            raise

    async def _run(
        self,
        wizard: Wizard,
        state: str | None,
        handler: Handler,
        event: InboundEvent,
    ) -> Transition:
        token = self._tokens.get(event.user_id)
        if token is None:
            token = self._tokens[event.user_id] = CancelToken()
        ctx = HandlerContext(
            event=event,
            wizard=wizard.name,
            state=state,
            store=self._store,
            prompter=self._prompter,
            cancel_token=token,
            cleanup=wizard.cleanup,
        )
        try:
            transition = await handler(ctx)
        except SessionDataError as exc:
            logger.warning(
                "dispatch.session_data_missing",
                user_id=event.user_id,
                wizard=wizard.name,
                state=state,
                error=str(exc),
            )
            await self._prompter.reply(
                event.chat_id, START_OVER_TEXT.format(command=wizard.entry_command)
            )
            transition = END
        except SelectionLost as exc:
            logger.warning(
                "dispatch.selection_lost",
                user_id=event.user_id,
                wizard=wizard.name,
                state=state,
                error=str(exc),
            )
            await self._prompter.reply(event.chat_id, str(exc))
            transition = END
        except OperationCancelled:
            logger.info(
                "dispatch.handler_cancelled",
                user_id=event.user_id,
                wizard=wizard.name,
                state=state,
            )
            transition = STAY
        await self._apply(wizard, state, event.user_id, transition)
        return transition

    async def _apply(
        self,
        wizard: Wizard,
        state: str | None,
        user_id: int,
        transition: Transition,
    ) -> None:
        match transition:
            case Advance(state=target):
                if not wizard.has_state(target):
                    raise TransitionError(wizard.name, target)
                await self._store.set_position(user_id, wizard.name, target)
                logger.debug(
                    "dispatch.advance",
                    user_id=user_id,
                    wizard=wizard.name,
                    from_state=state,
                    to_state=target,
                )
            case Stay():
                if state is None:
                    await self._end(wizard, user_id)
            case End():
                await self._end(wizard, user_id)
                logger.info("wizard.ended", user_id=user_id, wizard=wizard.name)
            case _:
                raise TypeError(f"handler returned {transition!r}, not a transition")

    async def _end(self, wizard: Wizard, user_id: int) -> None:
        await self._prompter.clear_previous(user_id, wizard.cleanup)
        await self._store.clear(user_id)
        self._tokens.pop(user_id, None)

    @staticmethod
    def _match(routes, event: InboundEvent) -> Handler | None:
        for route in routes:
            if route.matcher(event):
                return route.handler
        return None
