import json
from typing import Any, Optional, Tuple

SYSTEM_PROMPT = """You are an expert at parsing educational questions from JEE/NEET examination papers processed by OCR.

**Input Format:**
1. Markdown (MMD) - preserves LaTeX formulas and structure
2. JSON (optional) - contains structured elements

**Your Task:**
Extract each question as a separate object with:
- question_text: Full question with LaTeX formulas preserved (e.g., \\( x^2 + 5x + 6 = 0 \\))
- question_format: "single_choice" (for MCQs), "multiple_choice", "true_false", "fill_blank", "short_answer"
- options: { "A": "...", "B": "...", "C": "...", "D": "..." } for MCQs (use null if not MCQ)
- correct_answer: The correct option letter(s) or answer text
- explanation: Solution/explanation if present (use null if not available)
- difficulty: Auto-detect based on complexity:
  * "Low" - Basic recall, simple arithmetic, direct formulas
  * "Medium" - Single-concept application, straightforward problem-solving
  * "Intermediate" - Multi-step reasoning, 2-3 concepts combined
  * "Advanced" - Complex analysis, advanced concepts, multi-layered reasoning
- difficulty_reasoning: Brief explanation (1 sentence) why you chose this difficulty

**Question Boundary Detection:**
- Look for question numbers: "Q1", "Q2", "1.", "2.", etc.
- Each MCQ typically has 4 options (A, B, C, D or 1, 2, 3, 4)
- Questions may span multiple lines

**LaTeX Preservation:**
- Keep all LaTeX exactly as written: \\( ... \\) for inline, \\[ ... \\] for display
- DO NOT modify or "fix" LaTeX unless it's clearly broken

**Output Format:**
Return a valid JSON object with this structure:
{
  "questions": [
    {
      "question_text": "...",
      "question_format": "single_choice",
      "options": { "A": "...", "B": "...", "C": "...", "D": "..." },
      "correct_answer": "C",
      "explanation": "..." or null,
      "difficulty": "Medium",
      "difficulty_reasoning": "..."
    }
  ]
}

IMPORTANT: Return ONLY valid JSON. No markdown code blocks, no explanations, just the JSON object."""

def build_extraction_prompts(file_name: str, content: str, content_json: Optional[Any] = None) -> Tuple[str, str]:
    json_section = ""
    if content_json:
        json_section = f"""**JSON Structure:**
```json
{json.dumps(content_json, indent=2)}
```
"""

    user_prompt = f"""Document: {file_name}

**Markdown (MMD):**
```
{content}
```

{json_section}
Extract all questions from this document. Return valid JSON only."""

    return SYSTEM_PROMPT, user_prompt
