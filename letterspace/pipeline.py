"""
Progressive translation of Letterspace documents.

This module orchestrates the translation workflow:
1. Translate the title, then the subtitle
2. Clean the document content of image file references
3. Split the content into chunks and translate them one at a time
4. Reassemble the chunks and carry the original formatting over
5. Optionally store the result as a "Translation (<Language>)" variation

Design Philosophy:
- Title and subtitle failures abort the whole translation
- A failing chunk is replaced by a placeholder and the loop continues
- Progress callbacks for CLI integration
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from letterspace.models import Document, DocumentElement, ElementType
from letterspace.storage import DocumentStore
from letterspace.translate.base import TextGenerator
from letterspace.translate.chunking import (
    PARAGRAPH_SEPARATOR,
    clean_content_for_translation,
    split_content_into_chunks,
)
from letterspace.translate.errors import AIServiceError, TranslationError
from letterspace.translate.formatting import StyledText, apply_formatting

logger = logging.getLogger("letterspace-pipeline")

# Type alias for progress callbacks
ProgressCallback = Callable[[str, float], None]

CHUNK_ERROR_PLACEHOLDER = "⚠️ [Translation error for this section]"
EMPTY_FIRST_CHUNK_PLACEHOLDER = "⚠️ [First paragraph was empty - please check the translation] ⚠️"

TITLE_PROGRESS = 0.1
SUBTITLE_PROGRESS = 0.2
CONTENT_PROGRESS_SHARE = 0.8

# Default look of element types when no rich text is stored
_ELEMENT_ATTRIBUTES = {
    ElementType.HEADER: {"font_size": 24, "bold": True},
    ElementType.TITLE: {"font_size": 24, "bold": True},
    ElementType.SUBHEADER: {"font_size": 18},
    ElementType.SCRIPTURE: {"italic": True},
}


class TranslationLanguage(str, Enum):
    """Target languages offered for translation."""
    ENGLISH = "English"
    SPANISH = "Spanish"
    FRENCH = "French"
    GERMAN = "German"
    ITALIAN = "Italian"
    PORTUGUESE = "Portuguese"
    RUSSIAN = "Russian"
    CHINESE = "Chinese (Simplified)"
    JAPANESE = "Japanese"
    KOREAN = "Korean"
    ARABIC = "Arabic"
    HINDI = "Hindi"
    PUNJABI = "Punjabi"

    @property
    def code(self) -> str:
        return _LANGUAGE_CODES[self]

    @classmethod
    def parse(cls, value: str) -> TranslationLanguage:
        """Look a language up by display name, member name or ISO code."""
        needle = value.strip().lower()
        for language in cls:
            if needle in (language.value.lower(), language.name.lower(), language.code):
                return language
        raise ValueError(f"Unknown language: {value}")


_LANGUAGE_CODES = {
    TranslationLanguage.ENGLISH: "en",
    TranslationLanguage.SPANISH: "es",
    TranslationLanguage.FRENCH: "fr",
    TranslationLanguage.GERMAN: "de",
    TranslationLanguage.ITALIAN: "it",
    TranslationLanguage.PORTUGUESE: "pt",
    TranslationLanguage.RUSSIAN: "ru",
    TranslationLanguage.CHINESE: "zh",
    TranslationLanguage.JAPANESE: "ja",
    TranslationLanguage.KOREAN: "ko",
    TranslationLanguage.ARABIC: "ar",
    TranslationLanguage.HINDI: "hi",
    TranslationLanguage.PUNJABI: "pa",
}


@dataclass
class ContentChunk:
    """One piece of the document content and its translation."""
    text: str
    translated_text: str = ""
    is_translated: bool = False
    failed: bool = False


@dataclass
class TranslationOutcome:
    """Result of translating a document.

    Contains the translated title, subtitle and styled content plus the
    per-chunk record (useful for inspecting partial failures).
    """
    language: TranslationLanguage
    translated_title: str = ""
    translated_subtitle: str = ""
    translated_content: StyledText = field(default_factory=lambda: StyledText(""))
    chunks: list[ContentChunk] = field(default_factory=list)
    progress: float = 0.0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def translated_text(self) -> str:
        return self.translated_content.text


def build_prompt(text: str, language: TranslationLanguage) -> str:
    return (
        f"Translate the following text from English to {language.value}.\n"
        "Maintain the exact meaning and structure, only making minimal adjustments "
        "required by language structure differences.\n"
        "Return ONLY the translated text, nothing else.\n"
        "\n"
        "Text to translate:\n"
        f'"{text}"'
    )


def styled_document_content(document: Document) -> StyledText:
    """Cleaned, styled content of a document.

    Each element is cleaned on its own; elements left empty (image file
    names, blank blocks) are dropped and the rest joined by a blank line.
    """
    parts = []
    for element in document.elements:
        cleaned = clean_content_for_translation(element.content).strip("\n")
        if not cleaned.strip():
            continue
        if element.styled is not None and cleaned == element.styled.text:
            parts.append(element.styled)
        else:
            parts.append(StyledText.plain(cleaned, _ELEMENT_ATTRIBUTES.get(element.type)))
    return StyledText.join(parts, PARAGRAPH_SEPARATOR)


class TranslationPipeline:
    """Progressive, chunked document translation.

    Usage:
        pipeline = TranslationPipeline(create_generator("gemini"))
        outcome = pipeline.translate_document(doc, TranslationLanguage.SPANISH)
        variation = pipeline.create_translation_variation(doc, outcome, store=store)
    """

    def __init__(
        self,
        generator: TextGenerator,
        progress_callback: ProgressCallback | None = None,
    ):
        self.generator = generator
        self.progress_callback = progress_callback or (lambda msg, pct: None)

    def translate_text(self, text: str, language: TranslationLanguage) -> str:
        """Translate a single piece of text.

        Empty text is returned as is without calling the backend.

        Raises:
            AIServiceError: the backend failed or the token budget is exhausted
        """
        if not text:
            return ""
        logger.debug(f"Translating text: {text[:50]}...")
        result = self.generator.generate_text(build_prompt(text, language))
        return result.text.strip().replace('"', "")

    def _translate_heading(self, text: str, language: TranslationLanguage) -> str:
        try:
            return self.translate_text(text, language)
        except (AIServiceError, ValueError) as e:
            raise TranslationError(f"Translation failed: {e}") from e

    def translate_document(self, document: Document, language: TranslationLanguage) -> TranslationOutcome:
        """Translate title, subtitle and content of ``document``.

        Raises:
            TranslationError: the title or subtitle could not be translated
        """
        outcome = TranslationOutcome(language=language)
        self.progress_callback("Translating title...", 0.0)

        outcome.translated_title = self._translate_heading(document.title, language)
        outcome.progress = TITLE_PROGRESS
        self.progress_callback("Translating subtitle...", outcome.progress)

        outcome.translated_subtitle = self._translate_heading(document.subtitle, language)
        outcome.progress = SUBTITLE_PROGRESS
        self.progress_callback("Translating content...", outcome.progress)

        original = styled_document_content(document)
        chunk_texts = split_content_into_chunks(original.text) if original.text else []
        outcome.chunks = [ContentChunk(text=t) for t in chunk_texts]
        total = len(outcome.chunks)

        for i, chunk in enumerate(outcome.chunks):
            try:
                translated = self.translate_text(chunk.text, language)
                if i == 0:
                    translated = translated.replace("\u200b", "")
                    if not translated.strip():
                        translated = EMPTY_FIRST_CHUNK_PLACEHOLDER
                chunk.translated_text = translated
            except (AIServiceError, ValueError) as e:
                logger.warning(f"Error translating chunk {i}: {e}")
                chunk.translated_text = CHUNK_ERROR_PLACEHOLDER
                chunk.failed = True
                outcome.errors.append(f"Chunk {i + 1}/{total}: {e}")
            chunk.is_translated = True

            outcome.progress = SUBTITLE_PROGRESS + (i + 1) / max(1, total) * CONTENT_PROGRESS_SHARE
            self.progress_callback(f"Translated chunk {i + 1}/{total}", outcome.progress)

        combined = PARAGRAPH_SEPARATOR.join(c.translated_text for c in outcome.chunks if c.translated_text)
        outcome.translated_content = apply_formatting(original, combined)
        outcome.progress = 1.0
        self.progress_callback("Complete!", outcome.progress)
        return outcome

    def create_translation_variation(
        self,
        document: Document,
        outcome: TranslationOutcome,
        store: Optional[DocumentStore] = None,
    ) -> Document:
        """Build a translation variation of ``document`` from ``outcome``.

        The variation holds a title element, a subheader element (when a
        subtitle was translated), one text block with the translated content
        and copies of the document's image elements. When ``store`` is given
        both documents are saved.
        """
        name = f"Translation ({outcome.language.value})"
        variation = document.create_variation(name)
        variation.title = outcome.translated_title
        variation.subtitle = outcome.translated_subtitle

        elements = []
        if outcome.translated_title:
            elements.append(DocumentElement(type=ElementType.TITLE, content=outcome.translated_title))
        if outcome.translated_subtitle:
            elements.append(DocumentElement(type=ElementType.SUBHEADER, content=outcome.translated_subtitle))
        elements.append(DocumentElement(
            type=ElementType.TEXT_BLOCK,
            content=outcome.translated_text,
            styled=outcome.translated_content,
        ))
        for element in document.elements:
            if element.type == ElementType.IMAGE and element.content:
                elements.append(DocumentElement(type=ElementType.IMAGE, content=element.content))
        variation.elements = elements

        if store is not None:
            store.save(document)
            store.save(variation)
        logger.info(f"Created variation '{name}' ({variation.id}) of {document.id}")
        return variation
