import json
from typing import Tuple

SYSTEM_PROMPT = """You are an expert educational content validator.

Analyze the question and verify:
1. Question clarity and grammar
2. Answer options quality
3. Correct answer accuracy
4. Explanation quality
5. Difficulty level appropriateness (is the assigned difficulty accurate?)

Respond with JSON:
{
  "status": "correct" | "medium" | "wrong",
  "confidence": 0.85,
  "comments": "Overall assessment",
  "issues": ["specific issues"],
  "difficulty_assessment": {
    "is_appropriate": true,
    "suggested_difficulty": "Medium",
    "reasoning": "Question requires multi-step calculation, appropriate for Medium"
  }
}

Use "medium" when the question is usable but needs a human to review it.
IMPORTANT: Return ONLY valid JSON."""

def build_verification_prompts(question) -> Tuple[str, str]:
    user_prompt = f"""Question: {question.question_text}
Format: {question.question_format}
Options: {json.dumps(question.options or {}, ensure_ascii=False)}
Correct Answer: {question.correct_answer}
Explanation: {question.explanation or 'None'}
Current Difficulty: {question.difficulty}"""

    return SYSTEM_PROMPT, user_prompt
