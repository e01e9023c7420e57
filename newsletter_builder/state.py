"""
Shared TypedDicts for the build pipeline.
"""

from pathlib import Path
from typing import TypedDict

from bs4 import Tag


class BuildPaths(TypedDict):
    newsletter: str
    docx: Path
    template_dir: Path
    out_dir: Path
    out_mjml: Path
    out_html: Path


class Topic(TypedDict):
    title: str
    nodes: list[Tag]     # p, ul, ol, img in document order


class ImageRef(TypedDict):
    src: str
    alt: str


class TopicParts(TypedDict):
    image: ImageRef | None
    caption_html: str
    body_html: str


class Category(TypedDict):
    title: str
    items: list[str]     # sanitized inline markup, one per bullet


class Event(TypedDict):
    title: str
    desc: str
    cta_text: str
    cta_url: str
    image: str
    image_alt: str
