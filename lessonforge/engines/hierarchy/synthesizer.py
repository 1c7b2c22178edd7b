"""
Hierarchy Synthesizer - rebuilds a lesson plan's nested structure from its
flat topic records and flattens it into one combined MDX document.

The output is served both as the inline preview and as the download, so the
same records must always produce byte-identical text.
"""

import re
from collections import OrderedDict
from typing import Dict, Iterable, List, Sequence

from lessonforge.engines.hierarchy.records import TopicRecord, sort_records

EMPTY_PLAN_PLACEHOLDER = "No content available for this lesson plan."
EMPTY_TOPIC_PLACEHOLDER = "*No content available for this topic.*"
EMPTY_SUBTOPIC_PLACEHOLDER = "*No content available for this subtopic.*"

DEFAULT_EXTENSION = "mdx"


def group_subtopics(records: Iterable[TopicRecord]) -> Dict[str, List[TopicRecord]]:
    """
    Bucket subtopics by parent name, each bucket sorted independently.

    Subtopics without a parent name cannot belong to any main topic and are
    left out of every bucket.
    """
    buckets: "OrderedDict[str, List[TopicRecord]]" = OrderedDict()
    for record in records:
        if not record.is_subtopic or not record.parent_name:
            continue
        buckets.setdefault(record.parent_name, []).append(record)
    return {parent: sort_records(children) for parent, children in buckets.items()}


def _section(level: int, title: str, content: str, placeholder: str) -> str:
    body = content.strip() if content else ""
    return f"{'#' * level} {title}\n\n{body or placeholder}\n\n"


def synthesize(lesson_plan_name: str, records: Sequence[TopicRecord]) -> str:
    """
    Emit the combined document for a lesson plan.

    Main topics become level-2 sections in ``order``; each is followed by its
    own subtopics as level-3 sections. Subtopics whose parent matches no main
    topic are dropped.
    """
    if not records:
        return f"# {lesson_plan_name}\n\n{EMPTY_PLAN_PLACEHOLDER}"

    main_topics = sort_records(r for r in records if not r.is_subtopic)
    buckets = group_subtopics(records)

    parts = [f"# {lesson_plan_name}\n\n"]
    for topic in main_topics:
        parts.append(_section(2, topic.name, topic.content, EMPTY_TOPIC_PLACEHOLDER))
        for subtopic in buckets.get(topic.name, []):
            parts.append(_section(3, subtopic.name, subtopic.content, EMPTY_SUBTOPIC_PLACEHOLDER))
    return "".join(parts)


def orphaned_subtopics(records: Sequence[TopicRecord]) -> List[TopicRecord]:
    """Subtopics that synthesize() leaves out because no main topic claims them."""
    main_names = {r.name for r in records if not r.is_subtopic}
    return [
        r for r in records
        if r.is_subtopic and (not r.parent_name or r.parent_name not in main_names)
    ]


def slugify(name: str) -> str:
    """Whitespace runs become hyphens, everything lower-cased."""
    return re.sub(r"\s+", "-", name).lower()


def combined_filename(lesson_plan_name: str, extension: str = DEFAULT_EXTENSION) -> str:
    return f"{slugify(lesson_plan_name)}-combined.{extension}"
