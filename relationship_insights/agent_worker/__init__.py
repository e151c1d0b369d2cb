"""
Background worker that keeps cached joint analyses in sync with late submissions.
"""
