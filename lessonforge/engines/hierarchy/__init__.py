"""Topic records and the hierarchy synthesizer."""

from lessonforge.engines.hierarchy.records import (
    LessonPlan,
    TopicRecord,
    record_sort_key,
    sort_records,
)
from lessonforge.engines.hierarchy.synthesizer import (
    combined_filename,
    orphaned_subtopics,
    slugify,
    synthesize,
)

__all__ = [
    "LessonPlan",
    "TopicRecord",
    "record_sort_key",
    "sort_records",
    "combined_filename",
    "orphaned_subtopics",
    "slugify",
    "synthesize",
]
