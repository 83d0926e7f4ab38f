from __future__ import annotations

from sketch_uploader.domain.models import CompileOptions, UploadOptions
from sketch_uploader.services.action_log import ActionLogService
from sketch_uploader.services.board_identity import resolve_port_address
from sketch_uploader.services.core_service import CoreError, CoreService
from sketch_uploader.services.settings import UploadSettingsService
from sketch_uploader.services.user_fields import UserFieldsService


class UploadSketchService:
    """Runs the user-field gate, then hands the sketch to the core service."""

    def __init__(
        self,
        user_fields: UserFieldsService,
        core_service: CoreService,
        settings: UploadSettingsService | None = None,
        action_log: ActionLogService | None = None,
    ) -> None:
        self.user_fields = user_fields
        self.core_service = core_service
        self.settings = settings or UploadSettingsService()
        self.action_log = action_log or user_fields.action_log
        self._upload_in_progress = False

    @property
    def upload_in_progress(self) -> bool:
        return self._upload_in_progress

    def prepare(self, sketch_path: str, *, use_configuration: bool = False) -> UploadOptions | None:
        path = sketch_path.strip()
        if not path:
            raise ValueError("Sketch path is required.")
        if self._upload_in_progress:
            self.action_log.log_event("upload", phase="refused", reason="in_progress")
            return None

        if not self.user_fields.check_before_upload(force_open=use_configuration):
            self.action_log.log_event(
                "upload",
                phase="gated",
                identity=self.user_fields.current_identity(),
                use_configuration=use_configuration,
            )
            return None
        if not self.user_fields.check_fields_for_upload():
            return None

        config = self.user_fields.provider.boards_config
        board = config.selected_board
        if board is None:
            return None
        return UploadOptions(
            sketch_path=path,
            board=board,
            port=resolve_port_address(config),
            user_fields=self.user_fields.get_fields(),
            verbose=self.settings.verbose_upload(),
            verify=self.settings.verify_after_upload(),
        )

    def run(self, options: UploadOptions) -> str:
        """Compile then upload; ``CoreError`` from either stage is reported and re-raised."""
        self._upload_in_progress = True
        self.action_log.log_event("upload", phase="start", **options.log_summary())
        try:
            build_output = self.core_service.compile(
                CompileOptions(
                    sketch_path=options.sketch_path,
                    board=options.board,
                    verbose=options.verbose,
                )
            )
            self.action_log.log_event("upload", phase="compiled", fqbn=options.board.fqbn or "")
            upload_output = self.core_service.upload(options)
        except CoreError as exc:
            self.user_fields.notify_failed_with_error(exc)
            self.action_log.log_event(
                "upload",
                phase="failed",
                error_kind=exc.kind.value,
                error=str(exc),
                fields_valid=self.user_fields.fields_valid,
            )
            raise
        finally:
            self._upload_in_progress = False
        self.action_log.log_event("upload", phase="done", fqbn=options.board.fqbn or "")
        return "\n".join(part.rstrip() for part in (build_output, upload_output) if part.strip())

    def upload(self, sketch_path: str, *, use_configuration: bool = False) -> bool:
        """Gate and upload in one call; ``CoreError`` propagates to the caller."""
        options = self.prepare(sketch_path, use_configuration=use_configuration)
        if options is None:
            return False
        self.run(options)
        return True
