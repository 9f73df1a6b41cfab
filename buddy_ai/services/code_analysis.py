"""
Code Simulation and Complexity Analysis

The model predicts what a snippet prints and estimates its Big-O
complexity. Nothing is executed.
"""
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from buddy_ai.agents.errors import MalformedGenerationError
from buddy_ai.schemas.exercise import CodeSimulation
from buddy_ai.services.llm_provider import get_llm

logger = logging.getLogger(__name__)


CODE_SIMULATION_PROMPT = """You are a careful code reviewer and debugger. Read the {language} snippet below, predict what happens when it runs, and review it.

```{language}
{code}
```

1. Predict the output. If it runs cleanly, put what it prints in "stdout" and leave "stderr" empty. If it has a syntax or runtime error, put the error in "stderr" and leave "stdout" empty.
2. Estimate time and space complexity in Big-O notation, or "N/A" when that does not apply.
3. Write a 2-3 sentence "summary" covering correctness, style and improvements. If there is an error, explain it.
4. For errors or clear optimizations add "suggestions", each with the line_number, a short suggestion and the full corrected code. Leave the list empty when nothing needs fixing."""

CODE_SIMULATION_SCHEMA: Dict[str, Any] = {
    "stdout": "string",
    "stderr": "string",
    "analysis": {
        "summary": "string",
        "suggestions": [{"line_number": 1, "suggestion": "string", "code": "string"}],
    },
    "complexity": {"time": "O(n)", "space": "O(1)"},
}


async def simulate_code_execution(code: str, language: str, llm: Optional[Any] = None) -> CodeSimulation:
    """
    Predict the output and complexity of a code snippet.

    Raises:
        MalformedGenerationError: Output could not be validated
    """
    llm = llm or get_llm()
    data = await llm.generate_structured(
        CODE_SIMULATION_PROMPT.format(language=language, code=code),
        CODE_SIMULATION_SCHEMA,
    )
    if not data:
        raise MalformedGenerationError("The model returned no code analysis")
    try:
        return CodeSimulation.model_validate(data)
    except ValidationError as e:
        raise MalformedGenerationError(f"Code analysis failed validation: {e.error_count()} errors") from e


def format_complexity_report(simulation: CodeSimulation) -> str:
    return (
        f"Time Complexity: **{simulation.complexity.time}**\n"
        f"Space Complexity: **{simulation.complexity.space}**\n\n"
        f"Summary: {simulation.analysis.summary}"
    )
