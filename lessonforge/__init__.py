"""LessonForge - lesson plan authoring with range-scoped AI refinement."""

__version__ = "1.0.0"
