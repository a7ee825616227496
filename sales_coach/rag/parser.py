"""Knowledge corpus parser for YAML frontmatter and markdown content.

Parses markdown documents with YAML frontmatter format:
---
id: SCR-BUDGET
title: Budget Step Scripts
methodology: sandler
content_type: script
components: [budget]
situations: [discovery, pricing]
---
## When they won't share budget
...

Each `## ` section becomes one KnowledgeChunk; a document without sections
is a single chunk.
"""

import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError as SchemaValidationError

from sales_coach.models.knowledge import KnowledgeChunk
from sales_coach.rag.config import REQUIRED_METADATA_FIELDS, VALID_CONTENT_TYPES
from sales_coach.scoring.weak_areas import component_key

logger = logging.getLogger(__name__)

_SECTION = re.compile(r"^##\s+(.+?)\s*$", re.MULTILINE)


@dataclass
class ParsedDocument:
    """Parsed corpus file with metadata and body."""

    metadata: dict[str, Any]
    body: str
    file_path: str
    checksum: str


@dataclass
class CorpusLoadReport:
    """Chunks loaded from a directory plus per-file errors."""

    chunks: list[KnowledgeChunk] = field(default_factory=list)
    errors: dict[str, list[str]] = field(default_factory=dict)
    files_loaded: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors


def compute_checksum(content: str) -> str:
    """Compute SHA-256 checksum of content.

    Args:
        content: Text to hash

    Returns:
        Hex-encoded SHA-256 hash
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Extract YAML frontmatter and body from markdown content.

    Args:
        content: Full markdown content with YAML frontmatter

    Returns:
        Tuple of (metadata dict, body string)

    Raises:
        ValueError: If frontmatter is missing or invalid
    """
    pattern = r"^---\s*\n(.*?)\n---\s*\n(.*)$"
    match = re.match(pattern, content, re.DOTALL)

    if not match:
        raise ValueError("Document must have YAML frontmatter between --- delimiters")

    yaml_content = match.group(1)
    body = match.group(2)

    try:
        metadata = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML frontmatter: {e}")

    if not isinstance(metadata, dict):
        raise ValueError("YAML frontmatter must be a dictionary")

    return metadata, body


def validate_metadata(metadata: dict[str, Any]) -> list[str]:
    """Validate corpus document metadata.

    Args:
        metadata: Parsed metadata dictionary

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    missing_fields = REQUIRED_METADATA_FIELDS - set(metadata.keys())
    if missing_fields:
        errors.append(f"Missing required fields: {', '.join(sorted(missing_fields))}")

    content_type = metadata.get("content_type")
    if content_type and content_type not in VALID_CONTENT_TYPES:
        errors.append(
            f"Invalid content_type '{content_type}'. Must be one of: {', '.join(sorted(VALID_CONTENT_TYPES))}"
        )

    for field_name in ["components", "situations"]:
        value = metadata.get(field_name)
        if value is not None and not isinstance(value, list):
            errors.append(f"{field_name} must be a list")

    return errors


def parse_document(file_path: Path, base_path: Optional[Path] = None) -> ParsedDocument:
    """Parse a corpus markdown file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If parsing fails or metadata is invalid
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Document not found: {file_path}")

    raw_content = file_path.read_text(encoding="utf-8")
    metadata, body = parse_frontmatter(raw_content)

    errors = validate_metadata(metadata)
    if errors:
        raise ValueError("; ".join(errors))

    relative_path = str(file_path.relative_to(base_path)) if base_path else str(file_path)
    return ParsedDocument(
        metadata=metadata,
        body=body,
        file_path=relative_path,
        checksum=compute_checksum(raw_content),
    )


def split_sections(body: str) -> list[tuple[str, str]]:
    """Split a markdown body on `## ` headers into (title, text) pairs.

    Text before the first header is dropped when headers exist.
    """
    matches = list(_SECTION.finditer(body))
    if not matches:
        return [("", body.strip())]

    sections = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(body)
        text = body[match.end():end].strip()
        if text:
            sections.append((match.group(1).strip(), text))
    return sections


def document_to_chunks(doc: ParsedDocument) -> list[KnowledgeChunk]:
    """Turn a parsed document into retrieval chunks."""
    meta = doc.metadata
    sections = split_sections(doc.body)
    chunks = []
    for index, (section_title, text) in enumerate(sections, start=1):
        if not text:
            continue
        chunk_id = meta["id"] if len(sections) == 1 else f"{meta['id']}-{index:02d}"
        chunks.append(
            KnowledgeChunk(
                id=str(chunk_id),
                title=section_title or meta["title"],
                text=text,
                methodology_tag=str(meta.get("methodology", "generic")).lower(),
                content_type=meta["content_type"],
                component_tags=tuple(component_key(c) for c in meta.get("components") or ()),
                situation_tags=tuple(meta.get("situations") or ()),
            )
        )
    return chunks


def load_corpus_dir(path: Path) -> CorpusLoadReport:
    """
    Load every `*.md` file under a directory.

    Files that fail to parse or validate are reported in the result and
    skipped; the rest still load.
    """
    report = CorpusLoadReport()
    for file_path in sorted(path.rglob("*.md")):
        key = str(file_path.relative_to(path))
        try:
            doc = parse_document(file_path, base_path=path)
            report.chunks.extend(document_to_chunks(doc))
            report.files_loaded += 1
        except (ValueError, SchemaValidationError) as e:
            report.errors[key] = [str(e)]
            logger.warning(f"Skipping corpus file {key}: {e}")
    logger.info(f"Loaded {len(report.chunks)} chunks from {report.files_loaded} files in {path}")
    return report
