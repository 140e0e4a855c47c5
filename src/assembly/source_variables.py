# src/assembly/source_variables.py — v1
"""Flatten gathered source documents into dot-notation template variables.

A document labelled with header "Thesis Documents" and document key
``business_case`` becomes ``thesis_documents.business_case``; the section
name alone (``thesis_documents``) is set to True so templates can guard it
with ``{{#section:thesis_documents}}``. Several documents on the same key are
joined in gather order, each under a per-model heading.
"""

from __future__ import annotations

import re
from typing import Any

from promptassembler.core.errors import PreconditionError
from promptassembler.core.models import SourceDocument

_NON_WORD = re.compile(r"[^a-z0-9]+")


def section_name(label: str) -> str:
    """Slugify a section label: lowercase, non-alphanumerics collapsed to '_'."""
    return _NON_WORD.sub("_", label.strip().lower()).strip("_")


def flatten_source_documents(documents: list[SourceDocument]) -> dict[str, Any]:
    """Group documents by ``<section>.<document_key>`` and add section flags.

    Documents with neither a header nor a document key carry no addressable
    name and are skipped.

    Raises:
        PreconditionError: A document has a section header but no document key.
    """
    grouped: dict[str, list[SourceDocument]] = {}
    sections: list[str] = []

    for doc in documents:
        meta = doc.metadata
        if not meta.document_key:
            if meta.header:
                raise PreconditionError(
                    f"Source document {doc.id} under header '{meta.header}' "
                    "is missing required metadata.documentKey."
                )
            continue
        section = section_name(meta.header or meta.display_name)
        if not section:
            continue
        grouped.setdefault(f"{section}.{meta.document_key}", []).append(doc)
        if section not in sections:
            sections.append(section)

    variables: dict[str, Any] = {key: _join(docs) for key, docs in grouped.items()}
    for section in sections:
        variables[section] = True
    return variables


def _join(docs: list[SourceDocument]) -> str:
    if len(docs) == 1:
        return docs[0].content
    blocks = []
    for doc in docs:
        model = doc.metadata.model_name or "AI Model"
        blocks.append(f"#### {model}\n\n{doc.content}")
    return "\n\n".join(blocks)
