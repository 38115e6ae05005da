"""
Google Speech-to-Text long-running recognition over REST.

The work is split in three so that no invocation has to hold a connection
open while the service transcribes:

* :class:`TranscriptionSubmitter` starts a ``longrunningrecognize`` job and
  returns the operation handle (or, rarely, an immediate result).
* :class:`OperationPoller` checks a handle once and reports whether it is done.
* :func:`reduce_transcript` flattens a finished payload into a single string.

Usage::

    submitter = TranscriptionSubmitter(provider)
    pending = submitter.submit("gs://my-bucket/calls/0001.wav")
    ...
    status = OperationPoller(provider).poll(pending.handle)
    if status.done:
        text = reduce_transcript(status.payload)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import requests

from .credentials import CredentialProvider
from .transport import send_json

logger = logging.getLogger(__name__)

RECOGNIZE_URL = "https://speech.googleapis.com/v1/speech:longrunningrecognize"
OPERATIONS_URL = "https://speech.googleapis.com/v1/operations/{name}"


@dataclass(frozen=True)
class Transcription:
    transcript: str
    confidence: Optional[float] = None


@dataclass(frozen=True)
class PendingOperation:
    handle: str


@dataclass(frozen=True)
class OperationStatus:
    done: bool
    payload: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None


SubmitResult = Union[Transcription, PendingOperation]


class _SpeechClient:
    def __init__(
        self,
        credentials: CredentialProvider,
        session: Optional[requests.Session] = None,
        *,
        max_attempts: int = 1,
        timeout: float = 60.0,
    ) -> None:
        self._credentials = credentials
        self._session = session or requests.Session()
        self._max_attempts = max_attempts
        self._timeout = timeout

    def _call(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        headers = self._credentials.auth_headers()
        headers["Content-Type"] = "application/json; charset=utf-8"
        return send_json(
            self._session,
            method,
            url,
            headers=headers,
            max_attempts=self._max_attempts,
            timeout=self._timeout,
            **kwargs,
        )


class TranscriptionSubmitter(_SpeechClient):
    def __init__(
        self,
        credentials: CredentialProvider,
        session: Optional[requests.Session] = None,
        *,
        language_code: str = "en-US",
        **kwargs: Any,
    ) -> None:
        super().__init__(credentials, session, **kwargs)
        self.language_code = language_code

    def submit(self, uri: str) -> Optional[SubmitResult]:
        """Start a long-running recognition job for ``uri``.

        Returns:
            A :class:`Transcription` if the response already carries results,
            a :class:`PendingOperation` with the operation name otherwise, or
            ``None`` when the response holds neither.
        """
        payload = {
            "config": {"language_code": self.language_code},
            "audio": {"uri": uri},
        }
        logger.info("Submitting %s for transcription", uri)
        response = self._call("POST", RECOGNIZE_URL, json=payload)

        results = response.get("results")
        if results:
            alternative = _first_alternative(results[0])
            if alternative is not None and "transcript" in alternative:
                logger.info("Transcription: %s", alternative["transcript"])
                logger.info("Confidence: %s", alternative.get("confidence"))
                return Transcription(alternative["transcript"], alternative.get("confidence"))

        logger.info("No transcription available")
        name = response.get("name")
        if not name:
            logger.warning("Response for %s carries no operation name", uri)
            return None
        logger.info("Operation %s started for %s", name, uri)
        return PendingOperation(str(name))


class OperationPoller(_SpeechClient):
    def poll(self, handle: str) -> OperationStatus:
        """Query the status of ``handle`` once.

        Only ``done: true`` counts as finished.  An ``error`` field is logged
        and kept on the returned status; a finished operation that failed is
        reported as done with ``error`` set.
        """
        response = self._call("GET", OPERATIONS_URL.format(name=handle))
        logger.debug("Operation %s: %s", handle, json.dumps(response, indent=2))
        error = response.get("error")
        if error:
            logger.warning("Operation %s reported an error: %s", handle, error)
            if not isinstance(error, dict):
                error = {"message": str(error)}
        done = response.get("done") is True
        if done:
            logger.info("Operation %s completed", handle)
            return OperationStatus(done=True, payload=response, error=error or None)
        if not error:
            logger.info("Operation %s still in progress", handle)
        return OperationStatus(done=False, error=error or None)


def reduce_transcript(payload: Optional[Dict[str, Any]]) -> str:
    """Join the top alternative of every result with single spaces.

    Accepts either a finished operation (results under ``response``) or a bare
    recognize response.  Results without alternatives are skipped and a
    payload without results reduces to ``""``.
    """
    if not payload:
        return ""
    container = payload.get("response") if "response" in payload else payload
    results = (container or {}).get("results") or []
    transcripts = []
    for result in results:
        alternative = _first_alternative(result)
        if alternative is not None:
            transcripts.append(alternative.get("transcript", ""))
    return " ".join(transcripts)


def _first_alternative(result: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(result, dict):
        return None
    alternatives = result.get("alternatives")
    if not alternatives or not isinstance(alternatives[0], dict):
        return None
    return alternatives[0]
