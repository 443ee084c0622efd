from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass

from .context import HandlerContext
from .matchers import CommandMatcher, Matcher, callback, command
from .model import END, InboundEvent, RegistryError, Transition
from .ui import Cleanup

Handler = Callable[[HandlerContext], Awaitable[Transition]]

CANCEL_COMMAND = "cancel"


@dataclass(frozen=True, slots=True)
class Route:
    matcher: Matcher
    handler: Handler


@dataclass(frozen=True, slots=True)
class State:
    name: str
    routes: tuple[Route, ...]


def state(name: str, *routes: Route) -> State:
    return State(name=name, routes=tuple(routes))


@dataclass(frozen=True, slots=True)
class Wizard:
    """Static description of one guided dialog.

    `entry` runs when `entry_command` arrives and no wizard is active; it
    returns the first transition like any other handler. Every state gets
    the `/cancel` exit and, when `cancel_callback` is set, a cancel button
    exit, both checked before the state's own routes.
    """

    name: str
    entry_command: str
    entry: Handler
    states: tuple[State, ...] = ()
    exits: tuple[Route, ...] = ()
    fallbacks: tuple[Route, ...] = ()
    cancel_text: str = "Operation cancelled."
    cancel_callback: str | None = None
    cleanup: Cleanup = Cleanup.DELETE

    def state_names(self) -> tuple[str, ...]:
        return tuple(s.name for s in self.states)

    def has_state(self, name: str) -> bool:
        return any(s.name == name for s in self.states)


def cancel_handler(text: str) -> Handler:
    async def handle(ctx: HandlerContext) -> Transition:
        await ctx.answer()
        await ctx.clear_prompt()
        await ctx.reply(text)
        return END

    return handle


class Registry:
    """Validated (wizard, state) -> ordered routes table."""

    def __init__(self, commands: Iterable[str]) -> None:
        self._commands = frozenset(name.lstrip("/") for name in commands)
        self._wizards: dict[str, Wizard] = {}
        self._entries: dict[str, str] = {}
        self._exits: dict[str, tuple[Route, ...]] = {}
        self._table: dict[tuple[str, str], tuple[Route, ...]] = {}

    def register(self, wizard: Wizard) -> None:
        self._validate(wizard)
        exits: list[Route] = [
            Route(command(CANCEL_COMMAND), cancel_handler(wizard.cancel_text))
        ]
        if wizard.cancel_callback is not None:
            exits.append(
                Route(callback(wizard.cancel_callback), cancel_handler(wizard.cancel_text))
            )
        exits.extend(wizard.exits)
        self._wizards[wizard.name] = wizard
        self._entries[wizard.entry_command] = wizard.name
        self._exits[wizard.name] = tuple(exits)
        for st in wizard.states:
            self._table[(wizard.name, st.name)] = (
                *exits,
                *st.routes,
                *wizard.fallbacks,
            )

    def lookup(self, wizard: str, state: str) -> tuple[Route, ...]:
        try:
            return self._table[(wizard, state)]
        except KeyError:
            raise RegistryError(
                f"no state {state!r} registered for wizard {wizard!r}"
            ) from None

    def exits(self, wizard: str) -> tuple[Route, ...]:
        try:
            return self._exits[wizard]
        except KeyError:
            raise RegistryError(f"unknown wizard {wizard!r}") from None

    def get(self, name: str) -> Wizard:
        try:
            return self._wizards[name]
        except KeyError:
            raise RegistryError(f"unknown wizard {name!r}") from None

    def entry_for(self, event: InboundEvent) -> Wizard | None:
        name = event.command
        if name is None:
            return None
        wizard_name = self._entries.get(name)
        if wizard_name is None:
            return None
        return self._wizards[wizard_name]

    def __iter__(self) -> Iterator[Wizard]:
        return iter(self._wizards.values())

    def __len__(self) -> int:
        return len(self._wizards)

    def _validate(self, wizard: Wizard) -> None:
        if not wizard.name:
            raise RegistryError("wizard name must not be empty")
        if wizard.name in self._wizards:
            raise RegistryError(f"wizard {wizard.name!r} is already registered")
        if CANCEL_COMMAND not in self._commands:
            raise RegistryError(f"command /{CANCEL_COMMAND} is not declared")
        entry = wizard.entry_command
        if entry not in self._commands:
            raise RegistryError(
                f"wizard {wizard.name!r} enters on undeclared command /{entry}"
            )
        if entry == CANCEL_COMMAND:
            raise RegistryError(f"wizard {wizard.name!r} cannot enter on /{entry}")
        if entry in self._entries:
            raise RegistryError(
                f"command /{entry} already enters wizard {self._entries[entry]!r}"
            )
        seen: set[str] = set()
        for st in wizard.states:
            if not st.name:
                raise RegistryError(f"wizard {wizard.name!r} has an unnamed state")
            if st.name in seen:
                raise RegistryError(
                    f"wizard {wizard.name!r} declares state {st.name!r} twice"
                )
            seen.add(st.name)
        routes = [*wizard.exits, *wizard.fallbacks]
        for st in wizard.states:
            routes.extend(st.routes)
        for route in routes:
            matcher = route.matcher
            if isinstance(matcher, CommandMatcher) and matcher.command not in self._commands:
                raise RegistryError(
                    f"wizard {wizard.name!r} routes undeclared command /{matcher.command}"
                )
