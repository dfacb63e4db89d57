"""Lint orchestration: tasks, dispatch, result algebra, evals."""
