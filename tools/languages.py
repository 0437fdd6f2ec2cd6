"""Supported conversation languages loaded from config/languages.yaml."""

import yaml
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Language(BaseModel):
    """A language the transport can speak and transcribe."""
    value: str
    label: str
    tts_provider: Optional[str] = None
    voice: Optional[str] = None
    transcription_provider: Optional[str] = None
    speech_model: Optional[str] = None


class LanguageCatalog(BaseModel):
    """Language table with alias normalization."""
    default: str = "en-US"
    aliases: Dict[str, str] = Field(default_factory=dict)
    languages: List[Language] = Field(default_factory=list)

    @classmethod
    def load(cls, path: Optional[str] = None) -> "LanguageCatalog":
        """
        Load the language table.

        Args:
            path: Path to a languages YAML file (default: config/languages.yaml)

        Returns:
            Parsed LanguageCatalog
        """
        if path is None:
            base_path = Path(__file__).parent.parent
            path = base_path / "config" / "languages.yaml"

        with open(path, "r", encoding="utf-8") as f:
            return cls(**(yaml.safe_load(f) or {}))

    def normalize(self, code: str) -> str:
        """Map short codes like 'es' to their full form."""
        return self.aliases.get(code, code)

    def get(self, code: str) -> Optional[Language]:
        for language in self.languages:
            if language.value == code:
                return language
        return None

    def is_supported(self, code: str) -> bool:
        return self.get(code) is not None

    def get_label(self, code: str) -> str:
        language = self.get(code)
        return language.label if language else code

    def supported_codes(self) -> List[str]:
        return [language.value for language in self.languages]
