"""Handler for NamespaceStore CRD."""

from __future__ import annotations

import os
import threading
from datetime import datetime, timezone
from typing import Any, Callable

import kopf

from .. import metrics
from ..builders.connection import create_connection_descriptor, create_namespace_resource_params
from ..builders.store_spec import parse_store_spec, secret_ref_from_spec
from ..config import OperatorConfig
from ..constants import (
    API_GROUP_VERSION,
    COND_DEGRADED,
    FINALIZER,
    KIND_NAMESPACE_STORE,
    REASON_INVALID_CONNECTION_PARAMS,
    REASON_MISSING_SECRET,
    REASON_MISSING_SYSTEM,
    REASON_PHASE_CONNECTING,
    REASON_PHASE_CREATING,
    REASON_PHASE_DELETING,
    REASON_PHASE_READY,
    REASON_PHASE_REJECTED,
    REASON_PHASE_VERIFYING,
    REASON_TEMPORARY_ERROR,
    RPC_CODE_IN_USE,
    RPC_CODE_INVALID_SCHEMA_PARAMS,
)
from ..models import (
    ConnectionDescriptor,
    ModeInfo,
    NSFSSpec,
    Phase,
    ReconcileResult,
    SecretRef,
    default_mode_table,
)
from ..services.kube import (
    NAMESPACE_STORE,
    NOOBAA,
    ConflictError,
    KubeRecordStore,
    RecordStoreError,
    get_k8s_store,
)
from ..services.noobaa import RPCError
from ..services.noobaa.base import StorageSystemClient
from ..services.noobaa.models import (
    CheckStatus,
    CreateNamespaceResourceParams,
    ExternalConnectionInfo,
    NamespaceResourceInfo,
    SystemInfo,
)
from ..tracing import add_span_attribute, trace_span
from ..utils.conditions import (
    get_condition,
    set_available_condition,
    set_error_condition,
    set_progressing_condition,
)
from ..utils.errors import ReconcileError, classify_error, sanitize_error_message
from ..utils.events import (
    emit_connection_added,
    emit_mode_changed,
    emit_persistent_error,
    emit_resource_created,
    emit_resource_deleted,
)
from .base import BaseHandler
from .shared import SystemConnector

SystemConnect = Callable[[str], StorageSystemClient]


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value:
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class NamespaceStoreReconciler(BaseHandler):
    """Reconciles a single NamespaceStore record.

    A reconciler is built per request. It loads the record, walks it through
    Verifying, Connecting and Creating, or runs the deletion flow when the
    record is marked for deletion, and publishes the resulting status.
    """

    def __init__(
        self,
        namespace: str,
        name: str,
        store: KubeRecordStore,
        connect: SystemConnect,
        config: OperatorConfig,
        mode_table: dict[str, ModeInfo],
    ) -> None:
        super().__init__(KIND_NAMESPACE_STORE)
        self.namespace = namespace
        self.name = name
        self.store = store
        self.connect = connect
        self.config = config
        self.mode_table = mode_table

        self.obj: dict[str, Any] = {"metadata": {"name": name, "namespace": namespace}}
        self.system: dict[str, Any] | None = None
        self.secret_ref: SecretRef | None = None
        self.secret_data: dict[str, str] | None = None

        self.client: StorageSystemClient | None = None
        self.system_info: SystemInfo | None = None
        self.connection_info: ExternalConnectionInfo | None = None
        self.resource_info: NamespaceResourceInfo | None = None
        self.add_connection_params: ConnectionDescriptor | None = None
        self.create_resource_params: CreateNamespaceResourceParams | None = None

        self.initial_mode = ""
        self.remote_mode = ""

    @property
    def meta(self) -> dict[str, Any]:
        return self.obj.setdefault("metadata", {})

    @property
    def status(self) -> dict[str, Any]:
        if not isinstance(self.obj.get("status"), dict):
            self.obj["status"] = {}
        return self.obj["status"]

    @property
    def phase(self) -> Phase:
        return Phase.parse(self.status.get("phase"))

    @property
    def mode(self) -> str:
        return (self.status.get("mode") or {}).get("modeCode", "")

    def record_age(self) -> float:
        """Seconds since the record was created."""
        created = _parse_timestamp(self.meta.get("creationTimestamp"))
        if created is None:
            return 0.0
        return (datetime.now(timezone.utc) - created).total_seconds()

    def in_grace_period(self) -> bool:
        return self.record_age() < self.config.grace_period_seconds

    def reconcile(self) -> ReconcileResult:
        """Run one reconciliation of the record."""
        with trace_span(
            "reconcile_namespacestore",
            kind=KIND_NAMESPACE_STORE,
            attributes={"namespacestore.name": self.name, "namespacestore.namespace": self.namespace},
        ):
            return self.reconcile_with_metrics(
                self.meta, self._reconcile, self.config.requeue_delay_seconds
            )

    def _reconcile(self) -> ReconcileResult:
        requeue = ReconcileResult(requeue_after=self.config.requeue_delay_seconds)

        try:
            obj = self.store.get(NAMESPACE_STORE, self.namespace, self.name)
        except RecordStoreError as e:
            self.log_error(self.meta, "Failed to load NamespaceStore", error=e, reason="LoadFailed")
            return requeue

        if obj is None or not (obj.get("metadata") or {}).get("uid"):
            self.log_info(self.meta, "NamespaceStore not found or deleted. Skip reconcile.", reason="NotFound")
            return ReconcileResult()

        self.obj = obj
        self.initial_mode = self.mode
        deleting = bool(self.meta.get("deletionTimestamp"))

        if deleting and FINALIZER not in (self.meta.get("finalizers") or []):
            self.log_info(self.meta, "NamespaceStore is being deleted without our finalizer", reason="Skipped")
            return ReconcileResult()

        if not deleting and self.rejected_until_spec_change():
            self.log_info(
                self.meta,
                "NamespaceStore is Rejected and its spec is unchanged. Skip reconcile.",
                reason="Skipped",
            )
            return ReconcileResult()

        if not deleting and self.ensure_common_meta_fields(self.meta):
            try:
                self._apply_update(self.store.update(NAMESPACE_STORE, self.obj))
            except RecordStoreError as e:
                self.log_error(self.meta, "Failed to add mandatory meta fields", error=e, reason="UpdateFailed")
                return requeue

        error: ReconcileError | None = None
        try:
            self.system = self.store.get(NOOBAA, self.namespace, self.config.system_name)
            self.load_secret()
            if deleting:
                self.reconcile_deletion()
            else:
                self.reconcile_phases()
        except Exception as e:
            error = classify_error(e)

        result = ReconcileResult()
        if error is not None:
            result = self.handle_error(error, deleting)
        elif deleting:
            return result
        else:
            self.apply_mode()

        try:
            self.publish_status()
        except ReconcileError as e:
            self.log_warning(self.meta, f"Temporary Error: {e.message}", reason=REASON_TEMPORARY_ERROR)
            result.requeue_after = self.config.requeue_delay_seconds
        return result

    def rejected_until_spec_change(self) -> bool:
        """Return True when a persistent error rejected the current generation.

        Stores rejected by their remote mode are not included, the mode is
        read again on every pass.
        """
        if self.phase is not Phase.REJECTED:
            return False
        if self.status.get("observedGeneration") != self.meta.get("generation"):
            return False
        degraded = get_condition(self.status.get("conditions") or [], COND_DEGRADED)
        return degraded is not None and degraded.get("reason") != REASON_PHASE_REJECTED

    def _apply_update(self, updated: dict[str, Any] | None) -> None:
        version = ((updated or {}).get("metadata") or {}).get("resourceVersion")
        if version:
            self.meta["resourceVersion"] = version

    def load_secret(self) -> None:
        """Resolve the credentials secret declared by the NamespaceStore spec, if any."""
        self.secret_ref = secret_ref_from_spec(self.obj.get("spec") or {}, self.namespace)
        if self.secret_ref is None:
            return
        try:
            self.secret_data = self.store.get_secret(self.secret_ref.namespace, self.secret_ref.name)
        except RecordStoreError as e:
            raise ReconcileError.transient(f"failed to read secret {self.secret_ref.name!r}: {e}") from e

    def reconcile_phases(self) -> None:
        with trace_span("phase_verifying", kind=KIND_NAMESPACE_STORE):
            self.reconcile_phase_verifying()
        with trace_span("phase_connecting", kind=KIND_NAMESPACE_STORE):
            self.reconcile_phase_connecting()
        with trace_span("phase_creating", kind=KIND_NAMESPACE_STORE):
            self.reconcile_phase_creating()

    def reconcile_phase_verifying(self) -> None:
        self.enter_phase(
            Phase.VERIFYING,
            REASON_PHASE_VERIFYING,
            'namespacestore operator started phase 1/3 - "Verifying"',
        )

        if not self.system or not (self.system.get("metadata") or {}).get("uid"):
            raise ReconcileError.persistent(
                REASON_MISSING_SYSTEM,
                f"NooBaa system {self.config.system_name!r} not found or deleted",
            )

        if self.secret_ref is not None and self.secret_data is None:
            if self.in_grace_period():
                raise ReconcileError.transient(
                    f"NamespaceStore Secret {self.secret_ref.name!r} not found, "
                    "but not rejecting the young as it might be in process"
                )
            raise ReconcileError.persistent(
                REASON_MISSING_SECRET,
                f"NamespaceStore Secret {self.secret_ref.name!r} not found",
            )

    def reconcile_phase_connecting(self) -> None:
        self.enter_phase(
            Phase.CONNECTING,
            REASON_PHASE_CONNECTING,
            'namespacestore operator started phase 2/3 - "Connecting"',
        )
        self.read_system_info()

    def reconcile_phase_creating(self) -> None:
        self.enter_phase(
            Phase.CREATING,
            REASON_PHASE_CREATING,
            'namespacestore operator started phase 3/3 - "Creating"',
        )
        self.reconcile_external_connection()
        self.reconcile_namespace_resource()

    def read_system_info(self, deleting: bool = False) -> None:
        """Read the remote system and derive the desired connection and resource.

        When deleting, a spec that no longer builds a valid descriptor only
        skips the connection cleanup.
        """
        self.client = self.connect(self.namespace)
        self.system_info = self.client.read_system()

        self.resource_info = self.system_info.find_namespace_resource(self.name)
        if self.resource_info is not None:
            self.remote_mode = self.resource_info.mode

        try:
            store = parse_store_spec(self.obj.get("spec") or {}, self.namespace)
            if isinstance(store, NSFSSpec):
                self.create_resource_params = create_namespace_resource_params(self.name, self.namespace, store)
                return
            secret_name = self.secret_ref.name if self.secret_ref else ""
            descriptor = create_connection_descriptor(self.name, store, self.secret_data or {}, secret_name)
        except ReconcileError as e:
            if not deleting or not e.is_persistent:
                raise
            self.log_warning(
                self.meta,
                f"Skipping external connection cleanup: {e.message}",
                reason=e.reason,
            )
            return

        if self.resource_info is not None and self.resource_info.identity_key != descriptor.identity_key:
            metrics.drift_detected_total.labels(kind=KIND_NAMESPACE_STORE).inc()
            self.log_warning(
                self.meta,
                "Namespace resource connection differs from the NamespaceStore spec",
                reason="ConnectionDrift",
                current_endpoint_type=self.resource_info.endpoint_type,
                current_endpoint=self.resource_info.endpoint,
                desired_endpoint_type=descriptor.endpoint_type,
                desired_endpoint=descriptor.endpoint,
            )

        existing = self.system_info.find_connection(descriptor.identity_key)
        if existing is not None:
            self.connection_info = existing
            descriptor.name = existing.name
            metrics.connection_operations_total.labels(operation="reuse", result="success").inc()
            add_span_attribute("namespacestore.connection", existing.name)

        self.add_connection_params = descriptor
        self.create_resource_params = create_namespace_resource_params(
            self.name, self.namespace, store, connection_name=descriptor.name
        )

    def reconcile_external_connection(self) -> None:
        """Verify and register the external connection unless one matches already."""
        if self.connection_info is not None or self.add_connection_params is None:
            return
        client, _ = self.connected_system()
        params = self.add_connection_params

        try:
            res = client.check_external_connection(params)
        except RPCError as e:
            if e.rpc_code == RPC_CODE_INVALID_SCHEMA_PARAMS:
                raise ReconcileError.persistent(
                    REASON_INVALID_CONNECTION_PARAMS,
                    f"CheckExternalConnection invalid params: {sanitize_error_message(e.message)}",
                ) from e
            raise

        status = res.status
        if status is CheckStatus.SUCCESS:
            pass
        elif status in (CheckStatus.INVALID_CREDENTIALS, CheckStatus.INVALID_ENDPOINT):
            if self.in_grace_period():
                self.log_info(
                    self.meta,
                    f"Got {status.value}. Not rejecting the young as it might be in process",
                    reason=status.value,
                )
                raise ReconcileError.transient(f"CheckExternalConnection got {status.value}, retrying")
            raise ReconcileError.persistent(
                status.value,
                f"NamespaceStore {self.name!r} invalid external connection {status.value}",
            )
        elif status in (CheckStatus.TIME_SKEW, CheckStatus.NOT_SUPPORTED):
            raise ReconcileError.persistent(
                status.value,
                f"NamespaceStore {self.name!r} invalid external connection {status.value}",
            )
        else:
            raise ReconcileError.transient(
                f"CheckExternalConnection Status={status.value} Error={res.error_code} "
                f"Message={sanitize_error_message(res.error_message)}"
            )

        try:
            client.add_external_connection(params)
        except RPCError:
            metrics.connection_operations_total.labels(operation="add", result="error").inc()
            raise
        metrics.connection_operations_total.labels(operation="add", result="success").inc()
        self.log_info(self.meta, f"Added external connection {params.name!r}", reason="ConnectionAdded")
        emit_connection_added(self.obj, params.name)

    def reconcile_namespace_resource(self) -> None:
        """Create the remote namespace resource unless it exists already."""
        if self.resource_info is not None or self.create_resource_params is None:
            return
        client, _ = self.connected_system()

        try:
            client.create_namespace_resource(self.create_resource_params)
        except RPCError:
            metrics.namespace_resource_operations_total.labels(operation="create", result="error").inc()
            raise
        metrics.namespace_resource_operations_total.labels(operation="create", result="success").inc()
        self.status.pop("mode", None)
        self.log_info(self.meta, f"Created namespace resource {self.name!r}", reason="ResourceCreated")
        emit_resource_created(self.obj, self.name)

    def reconcile_deletion(self) -> None:
        """Detach accounts, remove the remote resource and connection, then finalize."""
        if self.phase is not Phase.DELETING:
            self.enter_phase(Phase.DELETING, REASON_PHASE_DELETING, "namespacestore operator started deletion")

        if not self.system or not (self.system.get("metadata") or {}).get("uid"):
            self.log_info(
                self.meta,
                f"NooBaa system {self.config.system_name!r} not found, finalizing without remote cleanup",
                reason="SystemNotFound",
            )
            self.finalize_deletion()
            return

        self.read_system_info(deleting=True)
        client, _ = self.connected_system()

        if self.resource_info is not None:
            self.detach_accounts()
            try:
                client.delete_namespace_resource(self.name)
            except RPCError as e:
                metrics.namespace_resource_operations_total.labels(operation="delete", result="error").inc()
                if e.rpc_code == RPC_CODE_IN_USE:
                    raise ReconcileError.transient(
                        f"NamespaceStore {self.name!r} is still in use, retrying deletion"
                    ) from e
                raise
            metrics.namespace_resource_operations_total.labels(operation="delete", result="success").inc()
            self.log_info(self.meta, f"Deleted namespace resource {self.name!r}", reason="ResourceDeleted")
            emit_resource_deleted(self.obj, self.name)

        if self.connection_info is not None:
            try:
                client.delete_external_connection(self.connection_info.name)
                metrics.connection_operations_total.labels(operation="delete", result="success").inc()
            except RPCError as e:
                if e.rpc_code != RPC_CODE_IN_USE:
                    metrics.connection_operations_total.labels(operation="delete", result="error").inc()
                    raise
                metrics.connection_operations_total.labels(operation="delete", result="in_use").inc()
                self.log_warning(
                    self.meta,
                    f"External connection {self.connection_info.name!r} is still in use, keeping it",
                    reason=RPC_CODE_IN_USE,
                )

        self.finalize_deletion()

    def connected_system(self) -> tuple[StorageSystemClient, SystemInfo]:
        """Return the client and system snapshot read earlier in this pass.

        Raises:
            ReconcileError: Transient error when the system was not read yet
        """
        if self.client is None or self.system_info is None:
            raise ReconcileError.transient("NooBaa system was not read before the remote update")
        return self.client, self.system_info

    def detach_accounts(self) -> None:
        """Point accounts using this resource by default back to the internal pool.

        Every account is attempted. Failures are combined so that a persistent
        one is reported over transient ones.
        """
        client, system_info = self.connected_system()
        internal_pool = system_info.internal_pool_name()
        errors: list[Exception] = []
        for account in system_info.accounts:
            if account.default_resource != self.name:
                continue
            allowed_buckets = dict(account.allowed_buckets)
            if allowed_buckets.get("permission_list") is None:
                allowed_buckets["permission_list"] = []
            self.log_info(
                self.meta,
                f"Setting default resource of account {account.email!r} to {internal_pool!r}",
                reason="AccountDetached",
            )
            try:
                client.update_account_s3_access(
                    account.email,
                    account.has_s3_access,
                    internal_pool,
                    allowed_buckets,
                )
            except Exception as e:
                self.log_error(
                    self.meta,
                    f"Failed to detach account {account.email!r}",
                    error=e,
                    reason="AccountDetachFailed",
                )
                errors.append(e)

        error = ReconcileError.combine(*errors)
        if error is not None:
            raise error

    def finalize_deletion(self) -> None:
        """Remove our finalizer so the record can go away."""
        if self.remove_finalizer(self.meta):
            try:
                self._apply_update(self.store.update(NAMESPACE_STORE, self.obj))
            except RecordStoreError as e:
                raise ReconcileError.transient(
                    f"NamespaceStore {self.name!r} failed to remove finalizer {FINALIZER!r}: {e}"
                ) from e
        self.log_info(self.meta, "Finalizer removed", reason="Finalized")

    def handle_error(self, error: ReconcileError, deleting: bool) -> ReconcileResult:
        metrics.error_total.labels(
            kind=KIND_NAMESPACE_STORE,
            error_kind=error.kind.value,
            reason=error.reason,
        ).inc()

        if error.is_persistent:
            if deleting:
                self.set_phase(None, error.reason, error.message, persistent=True)
            else:
                self.set_phase(Phase.REJECTED, error.reason, error.message)
            self.log_error(self.meta, f"Persistent Error: {error.message}", reason=error.reason)
            emit_persistent_error(self.obj, error.reason, error.message)
            return ReconcileResult()

        self.set_phase(None, REASON_TEMPORARY_ERROR, error.message)
        self.log_warning(self.meta, f"Temporary Error: {error.message}", reason=REASON_TEMPORARY_ERROR)
        return ReconcileResult(requeue_after=self.config.requeue_delay_seconds)

    def set_phase(
        self,
        phase: Phase | None,
        reason: str,
        message: str,
        persistent: bool = False,
    ) -> None:
        """Set the phase and the matching conditions.

        A phase of None keeps the current phase and only updates conditions.
        """
        conditions = self.status.get("conditions") or []
        if phase is not None:
            self.status["phase"] = phase.value
            self.log_info(self.meta, f"SetPhase: {phase.value}", reason=reason)

        if phase is Phase.READY:
            conditions = set_available_condition(conditions, reason, message)
        elif phase is Phase.REJECTED or persistent:
            conditions = set_error_condition(conditions, reason, message)
        else:
            conditions = set_progressing_condition(conditions, reason, message)
        self.status["conditions"] = conditions

    def enter_phase(self, phase: Phase, reason: str, message: str) -> None:
        """Set the phase and publish it right away."""
        self.set_phase(phase, reason, message)
        metrics.phase_transitions_total.labels(phase=phase.value).inc()
        self.publish_status()

    def set_mode(self, mode: str) -> None:
        if mode == self.mode:
            return
        self.status["mode"] = {
            "modeCode": mode,
            "timeStamp": datetime.now(timezone.utc).isoformat(),
        }

    def apply_mode(self) -> None:
        """Derive the final phase of a successful pass from the remote mode.

        The remote mode is only published here. A mode event is emitted when
        it differs from the mode published by the last successful pass.
        """
        if self.remote_mode:
            self.set_mode(self.remote_mode)
        mode = self.mode
        add_span_attribute("namespacestore.mode", mode)
        info = self.mode_table.get(mode)
        if info is None:
            self.set_phase(
                Phase.READY,
                REASON_PHASE_READY,
                "namespacestore operator completed reconcile - namespace store is ready",
            )
            return

        reason = f"NamespaceStorePhase{info.phase.value}"
        message = f"Namespace store mode: {mode}"
        self.set_phase(info.phase, reason, message)
        if mode != self.initial_mode:
            emit_mode_changed(self.obj, info.severity, reason, message)

    def publish_status(self) -> None:
        """Write the status, retrying once on a resourceVersion conflict.

        Raises:
            ReconcileError: Transient error when the write keeps failing
        """
        self.status["observedGeneration"] = self.meta.get("generation", 0)
        for attempt in range(2):
            try:
                self._apply_update(self.store.update_status(NAMESPACE_STORE, self.obj))
                return
            except ConflictError as e:
                if attempt:
                    raise ReconcileError.transient(f"UpdateStatus conflict: {e}") from e
                fresh = self.store.get(NAMESPACE_STORE, self.namespace, self.name)
                if fresh is None:
                    raise ReconcileError.transient("NamespaceStore disappeared while updating status") from e
                self._apply_update(fresh)
            except RecordStoreError as e:
                raise ReconcileError.transient(f"UpdateStatus failed: {e}") from e


class NamespaceStoreController:
    """Builds a reconciler per request from shared collaborators."""

    def __init__(
        self,
        store: KubeRecordStore,
        connect: SystemConnect,
        config: OperatorConfig | None = None,
        mode_table: dict[str, ModeInfo] | None = None,
    ) -> None:
        self.store = store
        self.connect = connect
        self.config = config or OperatorConfig()
        self.mode_table = mode_table if mode_table is not None else default_mode_table()
        self._locks: dict[tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, namespace: str, name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault((namespace, name), threading.Lock())

    def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """Reconcile one record. Passes for the same record never overlap."""
        with self._lock_for(namespace, name):
            reconciler = NamespaceStoreReconciler(
                namespace,
                name,
                self.store,
                self.connect,
                self.config,
                self.mode_table,
            )
            return reconciler.reconcile()


# Global controller instance
_controller: NamespaceStoreController | None = None


def get_controller() -> NamespaceStoreController:
    """Return the global controller, building it on first use."""
    global _controller
    if _controller is None:
        config = OperatorConfig.from_env()
        store = get_k8s_store()
        _controller = NamespaceStoreController(store, SystemConnector(store, config), config)
    return _controller


def close_controller() -> None:
    """Drop the global controller and close its management API clients."""
    global _controller
    if _controller is not None and isinstance(_controller.connect, SystemConnector):
        _controller.connect.close()
    _controller = None


@kopf.on.create(API_GROUP_VERSION, KIND_NAMESPACE_STORE)
@kopf.on.update(API_GROUP_VERSION, KIND_NAMESPACE_STORE)
@kopf.on.resume(API_GROUP_VERSION, KIND_NAMESPACE_STORE)
@kopf.on.delete(API_GROUP_VERSION, KIND_NAMESPACE_STORE, optional=True)
@kopf.timer(API_GROUP_VERSION, KIND_NAMESPACE_STORE, interval=int(os.getenv("DRIFT_CHECK_INTERVAL_SECONDS", "300")))
def handle_namespacestore(
    name: str,
    namespace: str,
    **kwargs: Any,
) -> None:
    """Handle NamespaceStore reconciliation and deletion."""
    result = get_controller().reconcile(namespace, name)
    if result.requeue_after is not None:
        raise kopf.TemporaryError(
            f"NamespaceStore {namespace}/{name} requeued",
            delay=result.requeue_after,
        )
