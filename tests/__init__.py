"""Constant Goal Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - goals/: sessions, analyzer, models, scheduling transitions, store
  - notify/: trigger scheduler and signal dispatcher
  - storage/: JSON codec, in-memory and SQLite repositories
- integration/: The wired service from create_goal_service

Run all tests:
    pytest tests/
"""
