"""Authenticated request dispatcher.

Routes requests through a bearer-token scheme and handles token expiry:

* every request is decorated with ``Authorization: Bearer <token>`` read
  fresh from the credential store, unless the caller already set one;
* a 401 on a non-auth URL suspends the caller and starts a single refresh
  through the configured ``AuthStrategy``;
* while that refresh is outstanding every new request is queued instead of
  dispatched;
* once it settles, queued requests are replayed in parallel (success) or
  resolved with a bare error outcome (failure).

All public operations resolve to an ``Outcome`` and never raise, unless
``DispatcherConfig.propagate_errors`` is set.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, Self

from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError

from .config import DispatcherConfig
from .credentials import CredentialStore, maybe_await
from .errors import ErrorCode, TokenRefreshError, TransportError
from .models import HttpMethod, Outcome, RawResponse, RequestDescriptor, Tokens
from .network import ConnectivityProbe, NetworkGate
from .request_queue import QueuedRequest, RequestQueue
from .telemetry import logger_for, request_attributes, trace_operation, tracer_for
from .transport import HttpxTransport

if TYPE_CHECKING:
    from .config import TransportConfig
    from .strategies.base import AuthStrategy
    from .transport import Transport

DefaultConfigProvider = Callable[
    [RequestDescriptor], Mapping[str, Any] | Awaitable[Mapping[str, Any]] | None
]
AuthFailureHandler = Callable[[BaseException], None | Awaitable[None]]
RequestTarget = RequestDescriptor | Mapping[str, Any] | str


class AuthDispatcher:
    """Bearer-token request dispatcher with single-flight token refresh."""

    def __init__(
        self,
        *,
        transport: Transport,
        credential_store: CredentialStore,
        strategy: AuthStrategy,
        on_auth_failure: AuthFailureHandler | None = None,
        get_default_config: DefaultConfigProvider | None = None,
        connectivity_probe: ConnectivityProbe | None = None,
        config: DispatcherConfig | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            transport: Performs the actual network I/O.
            credential_store: Source of truth for tokens.
            strategy: How to authenticate and refresh.
            on_auth_failure: Called once per failed refresh/authenticate cycle.
            get_default_config: Per-request defaults, layered under explicit fields.
            connectivity_probe: When set, requests wait until it reports reachable.
            config: Dispatcher behavior settings.
        """
        self.config = config or DispatcherConfig()
        self.strategy = strategy
        self._transport = transport
        self._store = credential_store
        self._on_auth_failure = on_auth_failure
        self._get_default_config = get_default_config
        self.network_gate = (
            NetworkGate(connectivity_probe, poll_interval=self.config.network_poll_interval)
            if connectivity_probe is not None
            else None
        )
        self._queue = RequestQueue()
        # set exactly while a refresh/authenticate call is outstanding
        self._auth_in_flight: asyncio.Future[Outcome[Tokens]] | None = None
        # sign-in arguments of the in-flight cycle; empty for a refresh
        self._in_flight_params: dict[str, Any] = {}
        self._replays: set[asyncio.Task[None]] = set()
        self._tracer = tracer_for(self.config.telemetry)
        self._logger = logger_for(self.config.telemetry)

    @classmethod
    def from_config(
        cls,
        transport_config: TransportConfig,
        *,
        credential_store: CredentialStore,
        strategy: AuthStrategy,
        **kwargs: Any,
    ) -> Self:
        """Build a dispatcher on top of the default httpx transport."""
        return cls(
            transport=HttpxTransport(transport_config),
            credential_store=credential_store,
            strategy=strategy,
            **kwargs,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Let running replays finish, then close the transport if it holds resources."""
        if self._replays:
            await asyncio.wait(self._replays)
        close = getattr(self._transport, "aclose", None)
        if close is not None:
            await close()

    @property
    def is_authenticating(self) -> bool:
        return self._auth_in_flight is not None

    @property
    def pending_count(self) -> int:
        """Number of callers waiting on the in-flight refresh."""
        return len(self._queue)

    @property
    def auth_url(self) -> str:
        return self.strategy.get_auth_url()

    # Public API --------------------------------------------------------------

    async def request(self, target: RequestTarget, /, **fields: Any) -> Outcome[Any]:
        """Dispatch a request.

        Args:
            target: A descriptor, a mapping of descriptor fields, or a URL.
            **fields: Descriptor fields overriding those in ``target``.

        Returns:
            The request's outcome.
        """
        descriptor = self._build_descriptor(target, fields)

        if self.network_gate is not None:
            await self.network_gate.wait_until_reachable()

        if self.is_authenticating:
            self._log_queued(descriptor, "authenticating")
            return await self._queue.enqueue(descriptor)

        with trace_operation(
            "dispatch_request",
            attributes=request_attributes(descriptor),
            tracer=self._tracer,
        ):
            try:
                response = await self._execute_request(descriptor)
            except TransportError as e:
                if not e.is_unauthorized or self.strategy.is_auth_request(descriptor):
                    return self._fail(e)
                pending = self._queue.enqueue(descriptor)
                self._log_queued(descriptor, "unauthorized")
                if not self.is_authenticating:
                    await self._run_auth("refresh_tokens", self.strategy.refresh_tokens)
                return await pending
            except Exception as e:
                return self._fail(e)

        return Outcome.success(response)

    async def get(self, target: RequestTarget, /, **fields: Any) -> Outcome[Any]:
        return await self.request(self._build_descriptor(target, fields, HttpMethod.GET))

    async def post(self, target: RequestTarget, /, **fields: Any) -> Outcome[Any]:
        return await self.request(self._build_descriptor(target, fields, HttpMethod.POST))

    async def put(self, target: RequestTarget, /, **fields: Any) -> Outcome[Any]:
        return await self.request(self._build_descriptor(target, fields, HttpMethod.PUT))

    async def delete(self, target: RequestTarget, /, **fields: Any) -> Outcome[Any]:
        return await self.request(self._build_descriptor(target, fields, HttpMethod.DELETE))

    async def authenticate(self, **kwargs: Any) -> Outcome[Tokens]:
        """Sign in through the configured strategy.

        Keyword arguments are strategy-specific (``username``/``password``
        for OAuth, none for JWT). While another cycle is in flight this
        waits for it; if that cycle was started with the same arguments (a
        refresh counts as no arguments) its outcome is shared, otherwise a
        new sign-in runs once it settles.
        """
        while (in_flight := self._auth_in_flight) is not None:
            shared = self._in_flight_params == kwargs
            if not shared:
                self._logger.debug(
                    "Sign-in waiting for the current authentication cycle",
                    keys=sorted(kwargs),
                )
            await asyncio.wait({in_flight})
            if shared and not in_flight.cancelled():
                outcome = in_flight.result()
                break
        else:
            outcome = await self._run_auth(
                "authenticate",
                lambda session: self.strategy.authenticate(session, **kwargs),
                params=kwargs,
            )

        if outcome.error and self.config.propagate_errors:
            raise outcome.cause or TokenRefreshError(
                "Authentication failed", code=ErrorCode.AUTHENTICATION_FAILED
            )
        return outcome

    # TokenSession --------------------------------------------------------------

    async def read_tokens(self, descriptor: RequestDescriptor) -> Tokens | None:
        return Tokens.coerce(await maybe_await(self._store.get_tokens(descriptor)))

    async def request_tokens(self, descriptor: RequestDescriptor) -> Outcome[Tokens]:
        """Send a token request and store what it returns.

        Failures are returned as error outcomes, never retried.
        """
        try:
            response = await self._execute_request(descriptor)
        except TransportError as e:
            return Outcome.failure(e)

        try:
            tokens = Tokens.model_validate(response.data)
        except ValidationError as e:
            tokens = None
            cause: BaseException | None = e
        else:
            cause = None
        if tokens is None or not tokens.is_usable:
            error = TokenRefreshError(
                "Token endpoint returned an unusable payload",
                status_code=response.status,
            )
            error.__cause__ = cause
            return Outcome.failure(error)

        await maybe_await(self._store.set_tokens(tokens))
        return Outcome(
            error=False,
            data=tokens,
            status=response.status,
            headers=dict(response.headers),
        )

    # Internal helpers -------------------------------------------------------

    def _build_descriptor(
        self,
        target: RequestTarget,
        fields: Mapping[str, Any],
        method: HttpMethod | None = None,
    ) -> RequestDescriptor:
        if isinstance(target, RequestDescriptor):
            if not fields and (method is None or "method" in target.model_fields_set):
                return target
            values = {name: getattr(target, name) for name in target.model_fields_set}
        elif isinstance(target, Mapping):
            values = dict(target)
        else:
            values = {"url": target}
        values.update(fields)
        if method is not None:
            values.setdefault("method", method)
        return RequestDescriptor.model_validate(values)

    async def _decorate(self, descriptor: RequestDescriptor) -> RequestDescriptor:
        """Attach auth, debug cookie, and default configuration.

        Caller-supplied ``Authorization`` and ``Cookie`` headers are never
        overwritten.
        """
        tokens = await self.read_tokens(descriptor)
        if tokens is not None and tokens.is_usable and not descriptor.has_header("Authorization"):
            descriptor = descriptor.with_header("Authorization", tokens.authorization)

        cookie = self.config.debug_cookie
        if cookie is not None and not descriptor.has_header("Cookie"):
            descriptor = descriptor.with_header("Cookie", cookie.get_secret_value())
            descriptor = descriptor.model_copy(update={"with_credentials": True})

        if self._get_default_config is not None:
            defaults = await maybe_await(self._get_default_config(descriptor))
            descriptor = descriptor.merged_over(defaults or {})

        return descriptor

    async def _execute_request(self, descriptor: RequestDescriptor) -> RawResponse:
        return await self._transport.perform(await self._decorate(descriptor))

    async def _run_auth(
        self,
        name: str,
        call: Callable[[AuthDispatcher], Awaitable[Outcome[Tokens]]],
        *,
        params: Mapping[str, Any] | None = None,
    ) -> Outcome[Tokens]:
        """Own one refresh/authenticate cycle and settle the queue after it.

        Must be entered only while no cycle is in flight; the caller checks
        and this sets the flag with no suspension point in between. Returns
        once the queue is settled; replays run as their own tasks.
        """
        in_flight: asyncio.Future[Outcome[Tokens]] = asyncio.get_running_loop().create_future()
        self._auth_in_flight = in_flight
        self._in_flight_params = dict(params or {})
        self._logger.info(
            "Authentication started",
            operation=name,
            auth_url=self.auth_url,
            queued=len(self._queue),
        )

        try:
            outcome = await self._call_strategy(name, call)
        except BaseException:
            self._end_cycle()
            self._cancel_queued(self._queue.drain(), None)
            in_flight.cancel()
            raise

        self._end_cycle()
        in_flight.set_result(outcome)
        queued = self._queue.drain()

        if outcome.ok:
            self._logger.info("Authentication succeeded", operation=name, queued=len(queued))
            self._perform_queued_requests(queued)
        else:
            self._logger.warning(
                "Authentication failed",
                operation=name,
                status=outcome.status,
                queued=len(queued),
                error=str(outcome.cause) if outcome.cause else None,
            )
            self._cancel_queued(queued, outcome.cause)
            await self._notify_auth_failure(outcome)

        return outcome

    def _end_cycle(self) -> None:
        self._auth_in_flight = None
        self._in_flight_params = {}

    async def _call_strategy(
        self,
        name: str,
        call: Callable[[AuthDispatcher], Awaitable[Outcome[Tokens]]],
    ) -> Outcome[Tokens]:
        with trace_operation(
            name, attributes={"auth.url": self.auth_url}, tracer=self._tracer
        ) as span:
            try:
                outcome = await call(self)
            except Exception as e:
                code = (
                    ErrorCode.AUTHENTICATION_FAILED
                    if name == "authenticate"
                    else ErrorCode.TOKEN_REFRESH_FAILED
                )
                error = TokenRefreshError(f"{name} failed: {e}", code=code)
                error.__cause__ = e
                outcome = Outcome.failure(error)
            if outcome.error:
                span.set_status(Status(StatusCode.ERROR, f"{name} failed"))
            return outcome

    def _perform_queued_requests(self, queued: list[QueuedRequest]) -> None:
        """Start one replay task per queued caller.

        The tasks belong to the dispatcher, not to the caller that ran the
        refresh, so cancelling that caller leaves the other replays running.
        """
        if not queued:
            return
        self._logger.debug("Replaying queued requests", count=len(queued))
        for item in queued:
            task = asyncio.create_task(self._replay(item))
            self._replays.add(task)
            task.add_done_callback(self._replays.discard)

    async def _replay(self, item: QueuedRequest) -> None:
        if item.future.done():
            # caller gave up while waiting
            return
        try:
            response = await self._execute_request(item.descriptor)
        except asyncio.CancelledError:
            self._abandon(item, "Request cancelled during replay", None)
            raise
        except Exception as e:
            if self.config.propagate_errors:
                item.reject(e)
            else:
                item.resolve(Outcome.failure(e))
        else:
            item.resolve(Outcome.success(response))

    def _cancel_queued(self, queued: list[QueuedRequest], cause: BaseException | None) -> None:
        for item in queued:
            self._abandon(item, "Request cancelled: token refresh failed", cause)

    def _abandon(self, item: QueuedRequest, message: str, cause: BaseException | None) -> None:
        if self.config.propagate_errors:
            error = TokenRefreshError(message)
            error.__cause__ = cause
            item.reject(error)
        else:
            item.resolve(Outcome.failure())

    async def _notify_auth_failure(self, outcome: Outcome[Tokens]) -> None:
        if self._on_auth_failure is None:
            return
        error = outcome.cause or TokenRefreshError()
        try:
            await maybe_await(self._on_auth_failure(error))
        except Exception:
            self._logger.exception("on_auth_failure handler raised")

    def _fail(self, exc: Exception) -> Outcome[Any]:
        if self.config.propagate_errors:
            raise exc
        self._logger.debug(
            "Request failed",
            error=str(exc),
            status=getattr(exc, "status_code", None),
        )
        return Outcome.failure(exc)

    def _log_queued(self, descriptor: RequestDescriptor, reason: str) -> None:
        self._logger.debug(
            "Request queued",
            reason=reason,
            method=descriptor.method.value,
            url=descriptor.url,
            queued=len(self._queue),
        )
