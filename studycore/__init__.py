"""
studycore - review scheduling for structured language courses.

Subpackages:
- fire: item memory engine, dependency graph, propagation and selection
- session_builders: interleaved practice sessions over exercises
- analytics: progress and confidence-calibration summaries
"""

__version__ = "0.1.0"
