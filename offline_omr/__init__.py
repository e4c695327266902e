"""Offline answer-sheet OMR grading: preprocessing, bubble extraction and review."""
