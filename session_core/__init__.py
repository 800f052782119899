"""Session attention and resource controller.

- score_model.py: decaying per-participant speaking scores
- primary_selector.py: hysteresis selection of the primary participant
- quality_allocator.py: per-participant video quality tiers
- lifecycle_guard.py: alone-timeout and page-unload teardown
- session.py: per-session owner of the four components and their timers
"""
