"""
Create Instance Use Case

Architectural Intent:
- Converges to exactly one Linode per successful create, even though
  POST /linode/instances is not idempotent
- Composes LabelGenerator, SpecResolver, the failure classifier and the
  RetryPolicy into one sequential coroutine
- Writes the InstanceHandle into the host state as soon as the instance is
  confirmed, so destroy can clean up even if booting later fails

State machine:
    IDLE -> RESOLVING_SPEC -> GENERATING_LABEL -> SUBMITTING
         -> (RETRYING | LABEL_CONFLICT -> GENERATING_LABEL)
         -> SUBMITTED -> POLLING -> READY | FAILED

Retry protocol:
- Every request of one create carries the same random owner tag, so an
  instance found under our label can be told apart from another job's.
- TRANSIENT: back off, then look the submitted label up. An instance there
  that carries our owner tag came from our own timed-out request and is
  adopted. One without it belongs to someone else, so a fresh label is drawn.
  Otherwise the same label is resubmitted. When the budget runs out on a
  TRANSIENT failure the lookup still happens, and an owned instance is
  recorded in state before failing so destroy can remove it.
- RATE_LIMITED: back off (Retry-After + jitter), resubmit the same label.
- LABEL_CONFLICT: back off, generate a fresh label, resubmit. Consumes the
  same attempt budget so the loop always terminates.
- USER_ERROR / UNKNOWN: fatal, never retried.
"""

from __future__ import annotations
import asyncio
import logging
import random
import uuid
from typing import Any, Awaitable, Callable, MutableMapping, Optional, TypeVar
from linode_kitchen.application.orchestration.retrying import RetryingExecutor, Sleep
from linode_kitchen.domain.entities.retry_context import ProvisioningStatus, RetryContext
from linode_kitchen.domain.events.instance_events import (
    InstanceCreatedEvent,
    InstanceCreationFailedEvent,
)
from linode_kitchen.domain.exceptions import (
    ActionFailed,
    ApiCallFailed,
    ApiError,
    LinodeKitchenError,
    UserError,
)
from linode_kitchen.domain.ports.cloud_api_port import CloudApiPort
from linode_kitchen.domain.ports.event_bus_port import EventBusPort
from linode_kitchen.domain.ports.transport_port import TransportPort
from linode_kitchen.domain.services.backoff_policy import RetryPolicy
from linode_kitchen.domain.services.failure_classifier import classify
from linode_kitchen.domain.services.label_generator import LabelGenerator
from linode_kitchen.domain.services.setup_commands import build_setup_sequence
from linode_kitchen.domain.services.spec_resolver import (
    ResolvedSpec,
    SpecResolver,
    build_create_payload,
)
from linode_kitchen.domain.value_objects.failure import Failure, FailureKind
from linode_kitchen.domain.value_objects.instance_handle import ID_KEY, InstanceHandle
from linode_kitchen.domain.value_objects.provision_spec import ProvisionSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")

RUNNING = "running"
OWNER_TAG_PREFIX = "kitchen-owner-"


class CreateInstance:
    def __init__(
        self,
        api: CloudApiPort,
        transport: TransportPort,
        event_bus: Optional[EventBusPort] = None,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
        poll_interval: float = 5.0,
        poll_tries: int = 120,
    ) -> None:
        self._api = api
        self._transport = transport
        self._event_bus = event_bus
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._poll_interval = poll_interval
        self._poll_tries = poll_tries

    async def execute(
        self,
        state: MutableMapping[str, Any],
        spec: ProvisionSpec,
        policy: Optional[RetryPolicy] = None,
        bourne_shell: bool = True,
    ) -> InstanceHandle:
        if state.get(ID_KEY) is not None:
            handle = InstanceHandle.from_state(state)
            logger.info("Linode %s already exists, nothing to create.", handle)
            return handle

        policy = policy or RetryPolicy(max_tries=spec.api_retries)
        executor = RetryingExecutor(policy, self._sleep, self._rng)
        ctx = RetryContext(policy.max_tries)

        try:
            handle, adopted = await self._provision(state, spec, executor, ctx, bourne_shell)
        except LinodeKitchenError as exc:
            self._transition(ProvisioningStatus.FAILED, str(exc))
            kind = ctx.last_failure.kind.name if ctx.last_failure else ""
            await self._publish(
                InstanceCreationFailedEvent(
                    attempts=ctx.attempt, failure_kind=kind, error_message=str(exc)
                )
            )
            raise

        self._transition(ProvisioningStatus.READY, f"Linode {handle} ready.")
        await self._publish(
            InstanceCreatedEvent(
                instance_id=handle.id,
                label=handle.label,
                attempts=ctx.attempt,
                backoff_seconds=ctx.backoff_elapsed,
                adopted=adopted,
            )
        )
        return handle

    async def _provision(
        self,
        state: MutableMapping[str, Any],
        spec: ProvisionSpec,
        executor: RetryingExecutor,
        ctx: RetryContext,
        bourne_shell: bool,
    ) -> tuple[InstanceHandle, bool]:
        self._transition(ProvisioningStatus.RESOLVING_SPEC, "Resolving instance spec...")

        async def fetch_catalog(kind: str) -> list[dict[str, Any]]:
            return await self._call(executor, lambda: self._api.list_catalog(kind), f"list {kind}")

        resolved = await SpecResolver(fetch_catalog).resolve(spec)

        body, adopted = await self._submit(state, spec, resolved, executor, ctx)
        handle = self._handle_from(body, spec)
        handle.write_to(state)
        self._transition(ProvisioningStatus.SUBMITTED, f"Linode {handle} created.")
        if not handle.uses_key_auth:
            logger.warning("Using SSH password auth, some things may not work.")

        running = await self._wait_for_running(handle, executor)
        if not handle.hostname:
            handle = self._handle_from(running, spec)
            handle.write_to(state)

        try:
            await self._transport.wait_until_ready(handle)
        except ConnectionError as exc:
            raise ActionFailed(f"Linode {handle} never became reachable: {exc}") from exc

        if bourne_shell:
            await self._run_setup(handle, spec)
        return handle, adopted

    async def _submit(
        self,
        state: MutableMapping[str, Any],
        spec: ProvisionSpec,
        resolved: ResolvedSpec,
        executor: RetryingExecutor,
        ctx: RetryContext,
    ) -> tuple[dict[str, Any], bool]:
        """Submit until the provider confirms an instance. Returns (body, adopted)."""
        labels = LabelGenerator(self._rng, spec.max_label_length)
        owner = self._owner_tag()
        label: Optional[str] = None
        # set once a request carrying this label ended without a clear answer
        ambiguous = False

        while True:
            if label is None:
                self._transition(ProvisioningStatus.GENERATING_LABEL, "Generating label...")
                label = await self._generate_label(labels, spec, executor)
                ambiguous = False
                self._log_request(spec, resolved, label)

            attempt = ctx.begin_attempt()
            self._transition(
                ProvisioningStatus.SUBMITTING,
                f"Submitting create request (attempt {attempt}/{ctx.max_tries})",
            )
            try:
                body = await self._api.create_instance(
                    build_create_payload(spec, resolved, label, extra_tags=(owner,))
                )
            except ApiError as exc:
                failure = classify(exc)
                ctx.record_failure(failure)
                if not failure.retryable:
                    raise self._fatal(failure) from exc
                if failure.kind is FailureKind.TRANSIENT:
                    ambiguous = True
                if ctx.exhausted:
                    message = (
                        f"Failed to create server: creation failed after "
                        f"{ctx.attempt} attempts (last failure: {failure})"
                    )
                    if ambiguous:
                        found, _ = await self._reconcile(label, owner, executor)
                        if found is not None:
                            stray = self._handle_from(found, spec)
                            stray.write_to(state)
                            message += f"; Linode {stray} was created anyway and recorded for destroy"
                    logger.error(message)
                    raise ActionFailed(message) from exc
            else:
                if "id" not in body:
                    raise ActionFailed(f"Create response carried no instance id: {body!r}")
                return body, False

            if failure.kind is FailureKind.LABEL_CONFLICT:
                logger.info("Got [%s] due to non-unique label when creating server.", failure.kind.name)
                if ambiguous:
                    found, _ = await self._reconcile(label, owner, executor)
                    if found is not None:
                        return found, True
                logger.info("Will try again with a new label if we can.")

            self._transition(ProvisioningStatus.RETRYING, str(failure))
            await executor.backoff(ctx, failure)

            if failure.kind is FailureKind.TRANSIENT:
                found, taken = await self._reconcile(label, owner, executor)
                if found is not None:
                    return found, True
                if taken:
                    label = None
            elif failure.kind is FailureKind.LABEL_CONFLICT:
                label = None

    def _owner_tag(self) -> str:
        return OWNER_TAG_PREFIX + uuid.UUID(int=self._rng.getrandbits(128), version=4).hex

    async def _generate_label(
        self, labels: LabelGenerator, spec: ProvisionSpec, executor: RetryingExecutor
    ) -> str:
        async def list_existing() -> set[str]:
            instances = await self._call(executor, self._api.list_instances, "list linodes")
            return {str(instance.get("label")) for instance in instances}

        if spec.label_style == "timestamp":
            return await labels.generate_timestamped(spec.label_prefix, list_existing)
        return await labels.generate(spec.label_prefix, list_existing)

    async def _reconcile(
        self, label: str, owner: str, executor: RetryingExecutor
    ) -> tuple[Optional[dict[str, Any]], bool]:
        """Look up ``label`` after an unanswered request.

        Returns the instance carrying our ``owner`` tag, if any, and whether
        the label is held by an instance that does not carry it.
        """
        instances = await self._call(
            executor, lambda: self._api.list_instances(label=label), f"look up label {label}"
        )
        taken = False
        for instance in instances:
            if instance.get("label") != label or "id" not in instance:
                continue
            if owner in (instance.get("tags") or ()):
                logger.info(
                    "Found Linode <%s, %s> from an earlier attempt, using it.",
                    instance["id"],
                    label,
                )
                return instance, False
            taken = True
        if taken:
            logger.info("Label %s is held by another Linode, will pick a new one.", label)
        return None, taken

    async def _wait_for_running(
        self, handle: InstanceHandle, executor: RetryingExecutor
    ) -> dict[str, Any]:
        self._transition(ProvisioningStatus.POLLING, "Waiting for linode to boot...")
        for poll in range(1, self._poll_tries + 1):
            body = await self._call(
                executor, lambda: self._api.get_instance(handle.id), f"look up linode {handle.id}"
            )
            status = body.get("status")
            if status == RUNNING:
                return body
            logger.debug(
                "Linode %s is %s (poll %d/%d)", handle, status, poll, self._poll_tries
            )
            await self._sleep(self._poll_interval)
        raise ActionFailed(
            f"Linode {handle} did not reach {RUNNING} after {self._poll_tries} polls"
        )

    async def _run_setup(self, handle: InstanceHandle, spec: ProvisionSpec) -> None:
        for step in build_setup_sequence(spec.hostname, spec.disables_password_auth):
            logger.info(step.description)
            if not await self._transport.execute(handle, step.command):
                logger.warning("Setup step failed on %s: %s", handle, step.description)
        logger.info("Done setting up server.")

    async def _call(
        self,
        executor: RetryingExecutor,
        operation: Callable[[], Awaitable[T]],
        description: str,
    ) -> T:
        try:
            return await executor.call(operation, description)
        except ApiCallFailed as exc:
            logger.error("Failed to %s: %s", description, exc.failure)
            raise ActionFailed(f"Failed to {description}: {exc.failure}") from exc

    @staticmethod
    def _fatal(failure: Failure) -> LinodeKitchenError:
        if failure.kind is FailureKind.USER_ERROR and failure.errors is not None:
            for entry in failure.errors:
                logger.error("error:")
                for key, value in entry.items():
                    logger.error("  %s: %s", key, value)
            return UserError("Bad request when creating server.")
        logger.error("Failed to create server: %s", failure)
        return ActionFailed(f"Failed to create server: {failure}")

    @staticmethod
    def _handle_from(body: dict[str, Any], spec: ProvisionSpec) -> InstanceHandle:
        addresses = body.get("ipv4") or []
        if spec.has_key_pair:
            return InstanceHandle(
                id=int(body["id"]),
                label=str(body.get("label", "")),
                hostname=addresses[0] if addresses else "",
                ssh_key=spec.private_key_path,
            )
        return InstanceHandle(
            id=int(body["id"]),
            label=str(body.get("label", "")),
            hostname=addresses[0] if addresses else "",
            password=spec.root_password,
        )

    @staticmethod
    def _log_request(spec: ProvisionSpec, resolved: ResolvedSpec, label: str) -> None:
        logger.info("Creating Linode:")
        logger.info("  label:  %s", label)
        logger.info("  region: %s", resolved.region)
        logger.info("  image: %s", resolved.image)
        logger.info("  type: %s", resolved.instance_type)
        logger.info("  tags: %s", list(spec.tags))
        if spec.swap_size is not None:
            logger.info("  swap_size: %s", spec.swap_size)
        if spec.private_ip:
            logger.info("  private_ip: %s", spec.private_ip)
        if spec.stackscript_id is not None:
            logger.info("  stackscript_id: %s", spec.stackscript_id)
        if resolved.kernel:
            logger.info("  kernel: %s", resolved.kernel)

    @staticmethod
    def _transition(status: ProvisioningStatus, message: str) -> None:
        logger.info("[%s] %s", status.name, message)

    async def _publish(self, event: Any) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish([event])
