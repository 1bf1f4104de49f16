"""
Dispatcher: one ``Invocation -> Outcome`` path for every transport.

Per request:

  Received -> Normalized -> [PaymentChecked, priced routes only] -> Executed -> Rendered

1. **Resolve** the capability (unknown names -> MethodNotFound).
2. **Validate** arguments against the capability's schema (-> InvalidParams).
3. **Gate** priced routes through the PaymentGate (-> PaymentRequired).
4. **Execute** the handler.

Steps 1-2 always run before step 3, so a malformed request is never asked
to pay. ``initialize`` and the ``*/list`` methods skip the gate entirely.
Every path ends in exactly one ``Success``, ``Failure`` or
``PaymentRequired``; no exception escapes ``dispatch()``.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

import content
from errors import DispatchError, ErrorKind, InvalidParamsError
from facilitator import FacilitatorClient, PaymentVerifier
from models import CapabilityDescriptor, Failure, Invocation, Outcome, PaymentRequired, RpcMethod, Success
from payment_gate import PaymentGate
from pricing import build_price_table
from registry import CapabilityRegistry, parse_tool_name
from settings import Settings
from tool_executor import ToolExecutor

logger = logging.getLogger("fluid-mcp.dispatcher")

Handler = Callable[[Invocation], Awaitable[Outcome]]


class Dispatcher:
    """Routes normalised invocations to the registry, gate and executor."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        gate: PaymentGate,
        executor: Optional[ToolExecutor] = None,
    ) -> None:
        self.registry = registry
        self.gate = gate
        self.executor = executor or ToolExecutor()
        self._handlers: dict[RpcMethod, Handler] = {
            RpcMethod.INITIALIZE: self._initialize,
            RpcMethod.TOOLS_LIST: self._list_tools,
            RpcMethod.PROMPTS_LIST: self._list_prompts,
            RpcMethod.RESOURCES_LIST: self._list_resources,
            RpcMethod.TOOLS_CALL: self._call_tool,
            RpcMethod.PROMPTS_GET: self._get_prompt,
            RpcMethod.RESOURCES_READ: self._read_resource,
        }

    async def dispatch(self, invocation: Invocation) -> Outcome:
        logger.debug("Dispatching %s (%s)", invocation.method.value, invocation.route_key)
        try:
            return await self._handlers[invocation.method](invocation)
        except DispatchError as e:
            logger.info("%s failed: %s", invocation.route_key, e.message)
            return Failure(kind=e.kind, message=e.message, data=e.data)
        except Exception as e:
            logger.exception("Unhandled error while dispatching %s", invocation.route_key)
            return Failure(kind=ErrorKind.INTERNAL_ERROR, message="Internal error", data={"detail": str(e)})

    # ------------------------------------------------------------------
    # Ungated methods
    # ------------------------------------------------------------------

    async def _initialize(self, invocation: Invocation) -> Outcome:
        return Success(value=self.registry.initialize_result())

    async def _list_tools(self, invocation: Invocation) -> Outcome:
        return Success(value=self.registry.list_tools())

    async def _list_prompts(self, invocation: Invocation) -> Outcome:
        return Success(value=self.registry.list_prompts())

    async def _list_resources(self, invocation: Invocation) -> Outcome:
        return Success(value=self.registry.list_resources())

    # ------------------------------------------------------------------
    # Gated methods
    # ------------------------------------------------------------------

    async def _payment_required(
        self, invocation: Invocation, descriptor: CapabilityDescriptor
    ) -> Optional[PaymentRequired]:
        decision = await self.gate.check(
            invocation.route_key,
            invocation.resource_url,
            invocation.payment_proof,
            description=descriptor.description,
        )
        if decision.allowed:
            return None
        return PaymentRequired(challenge=decision.challenge)

    async def _call_tool(self, invocation: Invocation) -> Outcome:
        tool = parse_tool_name(invocation.capability_name or "")
        descriptor = self.registry.tool(tool)
        arguments = self.executor.validate(tool, descriptor.input_schema, invocation.arguments)

        blocked = await self._payment_required(invocation, descriptor)
        if blocked is not None:
            return blocked

        logger.info("Tool call %s via %s", tool.value, invocation.route_key)
        return self.executor.execute(tool, arguments)

    async def _get_prompt(self, invocation: Invocation) -> Outcome:
        name = invocation.capability_name or ""
        descriptor = self.registry.prompt(name)
        missing = [
            arg for arg in descriptor.required
            if not invocation.arguments.get(arg)
        ]
        if missing:
            raise InvalidParamsError(
                f"Missing required prompt argument(s): {', '.join(missing)}",
                data={"required": descriptor.required, "missing": missing},
            )

        blocked = await self._payment_required(invocation, descriptor)
        if blocked is not None:
            return blocked
        return Success(value=content.render_prompt(name, invocation.arguments))

    async def _read_resource(self, invocation: Invocation) -> Outcome:
        uri = invocation.capability_name or ""
        descriptor = self.registry.resource(uri)

        blocked = await self._payment_required(invocation, descriptor)
        if blocked is not None:
            return blocked
        return Success(value=content.read_resource(uri))


def build_dispatcher(
    settings: Settings,
    verifier: Optional[PaymentVerifier] = None,
    executor: Optional[ToolExecutor] = None,
) -> Dispatcher:
    """Wire price table, registry, gate and executor for one process.

    Without an explicit ``verifier`` the facilitator client is used when
    payment is enabled.
    """
    prices = build_price_table(settings)
    if verifier is None and settings.payment_enabled:
        verifier = FacilitatorClient(settings)
    if prices:
        logger.info(
            "Payment enabled: %d priced routes, network=%s, payTo=%s...",
            len(prices), settings.network, (settings.pay_to_address or "")[:10],
        )
    else:
        logger.info("Payment not configured; all routes are free")
    return Dispatcher(CapabilityRegistry(prices), PaymentGate(prices, verifier), executor)
