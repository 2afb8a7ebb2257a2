"""
soulycore.core - Memory Orchestration Core

- Memory modules (episodic, structured, semantic)
- Context Assembly pipeline (read path, per turn)
- Memory Extraction pipeline (write path, background)
- Run/step logging for pipeline inspection
"""

__all__: list[str] = []
