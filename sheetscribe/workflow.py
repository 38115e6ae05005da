"""
Sheet-level steps of the transcription workflow.

Each step is one re-entrant unit of work that the scheduler (or a person)
triggers; none of them waits for a long-running operation.  Per row the state
moves ``LISTED -> SUBMITTED -> DONE -> SUMMARIZED -> RANKED / INSIGHTED``,
and every step only fills cells that are still empty, so running any step
twice is harmless.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from .config import CLOUD_PLATFORM_SCOPE, SHEETS_SCOPE, Columns, ConfigError, Settings
from .credentials import AuthError, CredentialProvider
from .llm import TextGenerationClient
from .processor import ProcessStats, RowProcessor, is_blank
from .prompts import TASKS, PromptTask
from .ratelimit import TokenBucket
from .sheets import HEADER_ROW, GoogleSheet, Sheet
from .speech import OperationPoller, PendingOperation, Transcription, TranscriptionSubmitter, reduce_transcript
from .storage import ObjectLister, split_gcs_path

logger = logging.getLogger(__name__)


class Workflow:
    def __init__(
        self,
        sheet: Sheet,
        credentials: CredentialProvider,
        lister: ObjectLister,
        submitter: TranscriptionSubmitter,
        poller: OperationPoller,
        generator: TextGenerationClient,
        *,
        columns: Optional[Columns] = None,
        limiter: Optional[TokenBucket] = None,
    ) -> None:
        self.sheet = sheet
        self.credentials = credentials
        self.lister = lister
        self.submitter = submitter
        self.poller = poller
        self.generator = generator
        self.columns = columns or Columns()
        self.processor = RowProcessor(sheet, limiter)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        sheet: Optional[Sheet] = None,
        session: Optional[requests.Session] = None,
    ) -> "Workflow":
        """Wire every component from ``settings``.

        Raises:
            ConfigError: If no sheet is given and no spreadsheet id is
                configured, or the service-account key cannot be loaded.
        """
        credentials = CredentialProvider(settings, scopes=(CLOUD_PLATFORM_SCOPE, SHEETS_SCOPE))
        if sheet is None:
            if not settings.spreadsheet_id:
                raise ConfigError("Missing required configuration: SHEETSCRIBE_SPREADSHEET_ID")
            if not credentials.load():
                raise ConfigError(f"Invalid SHEETSCRIBE_PRIVATE_KEY: {credentials.get_last_error()}")
            sheet = GoogleSheet(settings.spreadsheet_id, settings.sheet_name, credentials)
        session = session or requests.Session()
        http = {"max_attempts": settings.max_attempts, "timeout": settings.http_timeout}
        return cls(
            sheet,
            credentials,
            ObjectLister(credentials, session, **http),
            TranscriptionSubmitter(credentials, session, language_code=settings.language_code, **http),
            OperationPoller(credentials, session, **http),
            TextGenerationClient.from_settings(settings, session),
            columns=settings.columns,
            limiter=TokenBucket(rate=settings.calls_per_second),
        )

    def _auth_failed(self, step: str, exc: AuthError) -> int:
        logger.error("%s aborted: %s", step, self.credentials.get_last_error() or exc)
        return 0

    def list_files(self, gcs_path: str) -> int:
        """Append the URI of every object under ``gcs_path`` to the URI column."""
        if not gcs_path:
            logger.info("No GCS path provided.")
            return 0
        bucket, prefix = split_gcs_path(gcs_path)
        try:
            uris = self.lister.list_objects(bucket, prefix)
        except AuthError as exc:
            return self._auth_failed("list_files", exc)
        if not uris:
            return 0
        start = self.sheet.append_column(self.columns.uri, uris)
        logger.info("Appended %d URIs from row %d", len(uris), start)
        return len(uris)

    def start_transcriptions(self) -> int:
        """Submit every listed URI that has no operation handle yet."""
        columns = self.columns
        written = 0
        last_row = self.sheet.last_row()
        transcripts = self.sheet.get_column(columns.transcript, HEADER_ROW + 1, last_row)
        try:
            for row, uri in self.processor.pending_rows(columns.uri, columns.handle, last_row=last_row):
                if not is_blank(transcripts[row - HEADER_ROW - 1]):
                    continue
                self.processor.limiter.acquire()
                result = self.submitter.submit(uri.strip())
                if isinstance(result, PendingOperation):
                    self.sheet.set(columns.handle, row, result.handle)
                    written += 1
                elif isinstance(result, Transcription):
                    self.sheet.set(columns.transcript, row, result.transcript)
                    written += 1
        except AuthError as exc:
            logger.info("Submitted %d rows before failure", written)
            return self._auth_failed("start_transcriptions", exc)
        logger.info("Started %d transcriptions", written)
        return written

    def _fetch_transcript(self, handle: str) -> Optional[str]:
        handle = handle.strip()
        status = self.poller.poll(handle)
        if not status.done:
            return None
        if status.error:
            logger.warning(
                "Operation %s failed; clear its handle cell to resubmit the recording", handle
            )
            return None
        transcript = reduce_transcript(status.payload)
        if not transcript:
            logger.warning("Operation %s finished without any transcript", handle)
            return None
        return transcript

    def fetch_transcriptions(self) -> int:
        """Poll every stored handle once and write finished transcripts."""
        try:
            stats = self.processor.process(self.columns.handle, self.columns.transcript, self._fetch_transcript)
        except AuthError as exc:
            return self._auth_failed("fetch_transcriptions", exc)
        return stats.written

    def _apply(self, task: PromptTask, input_column: str, output_column: str) -> ProcessStats:
        def transform(text: str) -> str:
            return task.finish(self.generator.generate(*task.render(text)))

        logger.info("Running %s over %s -> %s", task.name, input_column, output_column)
        return self.processor.process(input_column, output_column, transform)

    def summarize(self) -> int:
        return self._apply(TASKS["summarize"], self.columns.transcript, self.columns.summary).written

    def rank(self) -> int:
        return self._apply(TASKS["rank"], self.columns.summary, self.columns.rank).written

    def insight(self) -> int:
        return self._apply(TASKS["insight"], self.columns.summary, self.columns.insight).written

    def run_task(self, name: str) -> int:
        """Run the prompt task called ``name``.

        Raises:
            KeyError: If there is no such task.
        """
        if name not in TASKS:
            raise KeyError(f"Unknown task: {name}")
        return getattr(self, name)()
