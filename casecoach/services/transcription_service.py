"""
Speech-to-text through the provider cascade.

Whisper on Groq is tried first; on quota or overload the Gemini model
transcribes the same audio inline. Failures use the same taxonomy as the
text operations.
"""

from casecoach.models.coaching import TranscriptionResult
from casecoach.models.llm import CascadePolicy
from casecoach.observability.logging import get_logger
from casecoach.services.llm.cascade import CascadeOrchestrator
from casecoach.utils.exceptions import InvalidRequestError

DEFAULT_MIME_TYPE = "audio/webm"


class TranscriptionService:
    """Transcribes recorded answers.

    Args:
        orchestrator: Cascade orchestrator bound to the configured providers
        policy: The ``transcribe`` cascade policy
        max_bytes: Largest accepted upload
    """

    def __init__(
        self,
        orchestrator: CascadeOrchestrator,
        policy: CascadePolicy,
        max_bytes: int = 25 * 1024 * 1024,
    ):
        self.orchestrator = orchestrator
        self.policy = policy
        self.max_bytes = max_bytes

    async def transcribe(
        self,
        audio: bytes,
        mime_type: str = DEFAULT_MIME_TYPE,
        filename: str = "recording.webm",
    ) -> TranscriptionResult:
        if not audio:
            raise InvalidRequestError("No audio file provided")
        if len(audio) > self.max_bytes:
            raise InvalidRequestError(
                f"Audio file too large ({len(audio)} bytes, limit {self.max_bytes})"
            )

        # Browsers send e.g. "audio/webm;codecs=opus"
        mime_type = (mime_type or DEFAULT_MIME_TYPE).split(";")[0].strip()

        response = await self.orchestrator.transcribe(
            self.policy, audio, mime_type, filename=filename
        )
        get_logger("transcription", policy=self.policy.name).info(
            "transcription_completed",
            provider=response.provider,
            model=response.model,
            audio_bytes=len(audio),
            transcript_chars=len(response.content),
        )
        return TranscriptionResult(transcript=response.content.strip())
