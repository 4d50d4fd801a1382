"""Media reconciliation: overlay the source upload tree onto the destination."""

from ..environment import EnvironmentDescriptor
from ..snapshot import StateSnapshot
from .base import ActionType, ConfirmGate, ReconcileAction, Reconciler


class MediaReconciler(Reconciler):
    """Copies the upload directory contents from source to destination.

    Files with the same relative path are replaced, new files are added and
    destination-only files are left alone.
    """

    category_label = "media"

    def reconcile(
        self,
        src_snapshot: StateSnapshot,
        dst_snapshot: StateSnapshot,
        src: EnvironmentDescriptor,
        dst: EnvironmentDescriptor,
        confirm: ConfirmGate,
    ) -> dict:
        self.output.warning(f"This action will overwrite the media at {dst}.")
        confirm()

        self.record(
            ReconcileAction(
                action=ActionType.COPY_MEDIA,
                reason=f"Overlay {src_snapshot.upload_dir} on {dst_snapshot.upload_dir}",
            )
        )
        self.site(dst).make_dirs(dst_snapshot.upload_dir)
        self.transport.copy(
            src, src_snapshot.upload_dir, dst, dst_snapshot.upload_dir, recursive=True
        )
        self.output.success("Done")
        return {"destination": dst_snapshot.upload_dir}
