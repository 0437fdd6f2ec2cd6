"""Tool for switching the conversation language."""

import logging
from typing import Any, Dict, Optional

from .base import Tool, ToolContext, ToolControl, ToolResult
from .languages import LanguageCatalog

logger = logging.getLogger(__name__)


class SwitchLanguageTool(Tool):
    """Switch both TTS and transcription to another language."""

    name = "switchLanguage"
    control = ToolControl.LANGUAGE

    def __init__(self, catalog: Optional[LanguageCatalog] = None):
        """
        Initialize language tool.

        Args:
            catalog: Supported languages (default: config/languages.yaml)
        """
        self.catalog = catalog or LanguageCatalog.load()
        codes = self.catalog.supported_codes()
        self.description = "Switch conversation language for both TTS and transcription"
        self.parameters = {
            "type": "object",
            "properties": {
                "ttsLanguage": {
                    "type": "string",
                    "description": "Target language code for text-to-speech",
                    "enum": codes
                },
                "transcriptionLanguage": {
                    "type": "string",
                    "description": "Target language code for speech transcription",
                    "enum": codes
                }
            },
            "required": ["ttsLanguage", "transcriptionLanguage"]
        }

    async def execute(self, args: Dict[str, Any], context: ToolContext) -> ToolResult:
        """Validate and normalize the requested languages."""
        tts_language = args.get("ttsLanguage")
        transcription_language = args.get("transcriptionLanguage")

        if not tts_language or not transcription_language:
            return self.failure("Both ttsLanguage and transcriptionLanguage are required")

        tts_language = self.catalog.normalize(tts_language)
        transcription_language = self.catalog.normalize(transcription_language)
        supported = ", ".join(self.catalog.supported_codes())

        if not self.catalog.is_supported(tts_language):
            return self.failure(
                f"Unsupported TTS language: {tts_language}. Supported languages: {supported}"
            )

        if not self.catalog.is_supported(transcription_language):
            return self.failure(
                f"Unsupported transcription language: {transcription_language}. "
                f"Supported languages: {supported}"
            )

        warning = None
        if tts_language != transcription_language:
            warning = (
                f"Warning: TTS language ({tts_language}) differs from transcription "
                f"language ({transcription_language}). The AI may not understand "
                f"speech in the target language."
            )
            logger.warning(f"[{context.party_key}] {warning}")

        tts = self.catalog.get(tts_language)
        transcription = self.catalog.get(transcription_language)

        return self.success({
            "message": f"Language switched to {self.catalog.get_label(transcription_language)}",
            "ttsLanguage": tts_language,
            "transcriptionLanguage": transcription_language,
            "warning": warning,
            "ttsProvider": tts.tts_provider,
            "voice": tts.voice,
            "transcriptionProvider": transcription.transcription_provider,
            "speechModel": transcription.speech_model,
        })
