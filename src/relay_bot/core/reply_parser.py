"""Detect embedded image/file references in a backend answer."""

from __future__ import annotations

import re
from dataclasses import dataclass

from relay_bot.core.types import ReplyKind

# Image syntax is a superset match of file syntax: test images first.
IMAGE_REFERENCE = re.compile(r"!\[.*?\]\((.*?)\)")
FILE_REFERENCE = re.compile(r"\[.*?\]\((.*?)\)")


@dataclass(frozen=True, slots=True)
class ParsedReply:
    kind: ReplyKind
    text: str
    url: str = ""
    caption: str = ""


def parse_reply(answer: str) -> ParsedReply:
    """Classify an answer as an image reply, a file reply or plain text.

    Only the first reference is honored. For images, the answer minus the
    reference becomes the caption; for files the leftover text is dropped.
    """
    match = IMAGE_REFERENCE.search(answer)
    if match and match.group(1).strip():
        caption = IMAGE_REFERENCE.sub("", answer, count=1).strip()
        return ParsedReply(
            kind=ReplyKind.IMAGE,
            text=answer,
            url=match.group(1).strip(),
            caption=caption,
        )

    match = FILE_REFERENCE.search(answer)
    if match and match.group(1).strip():
        return ParsedReply(kind=ReplyKind.FILE, text=answer, url=match.group(1).strip())

    return ParsedReply(kind=ReplyKind.TEXT, text=answer)
