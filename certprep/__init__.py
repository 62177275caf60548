"""
certprep - study session engine for certification exam preparation.

Subpackages:
- core: session data model, mastery tiers, exam mode policies, errors
- catalog: exam profiles and their learning objectives
- session: attempt recording, objective sequencing, mode switching, persistence, engine
- generation: streaming question/flashcard content from the generation service
- analytics: end-of-session results and recommendations
- cli: typer command-line interface
"""

__version__ = "0.3.0"
