"""
Meal photo calorie analysis.

Structure:
- domain/: Analysis models, request prompts, response parser, errors
- infrastructure/: Image compression, OpenAI client, food log storage
- application/: Use cases orchestrating the pipeline
- scripts/: Command-line entry points
- tests/: Test suite
"""

__version__ = "1.0.0"
