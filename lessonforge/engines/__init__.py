"""
Document engines - pure, storage-free algorithms.

- hierarchy: topic records and combined-document synthesis
- refinement: range tracking for partial refinement of a document
"""
