"""
Prompt assembly: base prompt + per-option instructions + context data
"""
import json
from typing import List

from diary_analyzer.components.contracts import AnalysisRequest, OutputOptions, PromptPayload

DAILY_TEXT_INSTRUCTION = "- `daily_text`: produce an inspiring summary text."
MOOD_SENTENCES_INSTRUCTION = (
    "- `mood_sentences`: produce a mapping from entry identifier to a short insight phrase."
)
MEMORIES_INSTRUCTION = (
    "- `final_memories`: consolidate `existing_memories` and `new_diaries` "
    "into a single authoritative list called `final_memories`."
)
NO_FIELDS_INSTRUCTION = "- No output fields are requested. Reply with an empty JSON object: {}"

INSTRUCTIONS_HEADER = "### OUTPUT FIELDS\nReturn a single JSON object containing exactly these fields:"
CONTEXT_HEADER = "### CONTEXT DATA"


def build_instructions(options: OutputOptions) -> List[str]:
    """One line per enabled option, in a fixed order"""
    lines = []
    if options.daily_text:
        lines.append(DAILY_TEXT_INSTRUCTION)
    if options.mood_sentences:
        lines.append(MOOD_SENTENCES_INSTRUCTION)
    if options.memories:
        lines.append(MEMORIES_INSTRUCTION)
    return lines


def build_context(request: AnalysisRequest) -> str:
    context = {
        "existing_memories": request.memories or [],
        "new_diaries": request.diaries,
    }
    return f"{CONTEXT_HEADER}\n{json.dumps(context, indent=2, ensure_ascii=False)}"


def build_prompt(base_prompt: str, request: AnalysisRequest) -> PromptPayload:
    """Deterministic: identical inputs give identical segments"""
    instructions = build_instructions(request.options) or [NO_FIELDS_INSTRUCTION]
    return PromptPayload(
        segments=[
            base_prompt.strip(),
            "\n".join([INSTRUCTIONS_HEADER] + instructions),
            build_context(request),
        ]
    )
