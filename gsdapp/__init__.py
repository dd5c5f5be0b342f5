"""
GSDapp backend package.

This package provides a FastAPI application for the GSD (Getting Stuff
Done) task manager: Eisenhower-matrix tasks, ideas, goals, daily
scorecards, AI-assisted categorization and reflections, and Polar
subscription billing.
"""
