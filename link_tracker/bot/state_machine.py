import threading
from collections.abc import Hashable, Mapping
from typing import Generic, TypeVar

from link_tracker.errors import EventDeclined, MachineCreationFailed

S = TypeVar("S", bound=Hashable)

# Событие, по которому переход срабатывает для любого текста без своего перехода
TEXT = "text"


class StateMachine(Generic[S]):
    """
    Табличный конечный автомат, у каждого чата своё текущее состояние.
    transitions: состояние -> {событие -> следующее состояние}
    """

    def __init__(self, initial: S, transitions: Mapping[S, Mapping[str, S]]):
        if initial not in transitions:
            raise MachineCreationFailed(f"у начального состояния {initial} нет переходов")
        self.initial = initial
        self._transitions = {state: dict(events) for state, events in transitions.items()}
        self._current: dict[int, S] = {}
        self._lock = threading.Lock()

    def current(self, chat_id: int) -> S:
        with self._lock:
            return self._current.get(chat_id, self.initial)

    def next_state(self, state: S, event: str) -> S | None:
        events = self._transitions.get(state, {})
        if event in events:
            return events[event]
        return events.get(TEXT)

    def transition(self, chat_id: int, event: str) -> S:
        """
        Переводит чат в следующее состояние
        :param chat_id:
        :param event: команда или текст сообщения
        :return: новое состояние
        """
        with self._lock:
            state = self._current.get(chat_id, self.initial)
            next_state = self.next_state(state, event)
            if next_state is None:
                raise EventDeclined(chat_id, event, state)
            self._current[chat_id] = next_state
            return next_state
