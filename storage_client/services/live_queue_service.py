"""Push channel client for background download status.

A single loop task owns the websocket. When the connection ends, for any
reason, the loop waits the fixed reconnect delay and opens a new one, for
as long as the client runs. Because the delay is awaited inside the same
task that held the previous connection, a new attempt can only begin after
the old instance is fully closed, and there is never more than one pending
reconnect.

Messages are not replayed across reconnects; consumers rely on the
queue-drained event to resynchronise.
"""
import asyncio
import inspect
import logging
from typing import Any, AsyncContextManager, AsyncIterator, Awaitable, Callable, List, Optional

from websockets.asyncio.client import connect
from websockets.exceptions import WebSocketException

from storage_client.core.operation_context import operation_context
from storage_client.core.tasks import monitor_task
from storage_client.models import ConnectionState, PushEvent
from storage_client.services.utils.push_decoder import PushDecodeError, decode_push_message
from storage_client.services.utils.reconnect import FixedDelay

logger = logging.getLogger(__name__)

EventHandler = Callable[[PushEvent], Awaitable[None] | None]
StateListener = Callable[[ConnectionState], Awaitable[None] | None]
Connector = Callable[[str], AsyncContextManager[AsyncIterator[Any]]]


def _default_connector(url: str) -> AsyncContextManager[AsyncIterator[Any]]:
	return connect(url, open_timeout=10, max_size=None)


class LiveQueueClient:
	"""Receive-only push connection with fixed-delay reconnection."""

	def __init__(
		self,
		url: str,
		*,
		reconnect_delay: float = 1.0,
		connector: Optional[Connector] = None,
	) -> None:
		self._url = url
		self._connector = connector or _default_connector
		self._reconnect = FixedDelay(reconnect_delay)
		self._state = ConnectionState.CLOSED
		self._is_running = False
		self._current_task: Optional[asyncio.Task[None]] = None
		self._restart_task: Optional[asyncio.Task[None]] = None
		self._handlers: List[EventHandler] = []
		self._state_listeners: List[StateListener] = []
		self._connection_count = 0

	@property
	def state(self) -> ConnectionState:
		return self._state

	@property
	def connection_count(self) -> int:
		"""Number of connection attempts made so far."""
		return self._connection_count

	@property
	def is_running(self) -> bool:
		return self._is_running

	def add_handler(self, handler: EventHandler) -> None:
		self._handlers.append(handler)

	def add_state_listener(self, listener: StateListener) -> None:
		self._state_listeners.append(listener)

	async def start(self) -> None:
		if self._is_running:
			return

		with operation_context("bg:push"):
			self._is_running = True
			self._current_task = monitor_task(
				asyncio.create_task(self._connection_loop(), name="live-queue"),
				name="live-queue",
				logger=logger,
				on_error=self._handle_task_crash,
			)
			logger.info("Push channel client started for %s", self._url)

	async def stop(self) -> None:
		self._is_running = False
		tasks = [task for task in (self._restart_task, self._current_task) if task is not None]
		self._restart_task = None
		self._current_task = None
		for task in tasks:
			task.cancel()
		# crashes were already logged by monitor_task
		await asyncio.gather(*tasks, return_exceptions=True)
		await self._set_state(ConnectionState.CLOSED)
		logger.info("Push channel client stopped")

	def _handle_task_crash(self, exc: BaseException) -> None:
		if not self._is_running:
			return
		logger.error("Push channel loop crashed, scheduling restart")
		self._is_running = False
		self._restart_task = monitor_task(
			asyncio.create_task(self.start(), name="live-queue-restart"),
			name="live-queue-restart",
			logger=logger,
		)

	async def _connection_loop(self) -> None:
		with operation_context("bg:push"):
			while self._is_running:
				await self._set_state(ConnectionState.CONNECTING)
				self._connection_count += 1
				try:
					async with self._connector(self._url) as websocket:
						self._reconnect.reset()
						await self._set_state(ConnectionState.OPEN)
						logger.info("Push channel connected")
						async for raw in websocket:
							await self._process_frame(raw)
					logger.info("Push channel closed by server")
				except asyncio.CancelledError:
					raise
				except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
					logger.warning("Push channel connection error: %s", exc)
				except Exception as exc:  # noqa: BLE001
					logger.warning("Push channel unexpected error: %s", exc)
				finally:
					if self._is_running:
						await self._set_state(ConnectionState.CLOSED)

				if self._is_running:
					delay = self._reconnect.next_delay()
					logger.info("Push channel reconnecting in %s seconds...", delay)
					await asyncio.sleep(delay)

	async def _process_frame(self, raw: str | bytes) -> None:
		try:
			event = decode_push_message(raw)
		except PushDecodeError as exc:
			logger.warning("Dropping undecodable push frame: %s", exc)
			return
		if event is None:
			logger.debug("Ignoring push frame of unknown type")
			return
		await self.dispatch(event)

	async def dispatch(self, event: PushEvent) -> None:
		"""Hand ``event`` to every handler in registration order."""
		for handler in self._handlers:
			try:
				result = handler(event)
				if inspect.isawaitable(result):
					await result
			except Exception:  # noqa: BLE001
				logger.warning("Push event handler failed for %s", event.kind, exc_info=True)

	async def _set_state(self, state: ConnectionState) -> None:
		if self._state == state:
			return
		self._state = state
		for listener in self._state_listeners:
			try:
				result = listener(state)
				if inspect.isawaitable(result):
					await result
			except Exception:  # noqa: BLE001
				logger.debug("Push channel state listener failed", exc_info=True)
