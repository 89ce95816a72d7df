from __future__ import annotations

SUMMARY_SYSTEM = """You are an expert educational content summarizer specialized in video lectures.

Hard rules:
- Do NOT dump the transcript.
- Prefer paraphrasing, abstraction, and re-structuring.
- Ignore stage directions like [Music], [Laughter], filler, repeated caption artifacts.
- Be faithful to meaning; do not invent facts.
"""

SUMMARY_USER_TEMPLATE = """Create a concise, informative summary of this video transcript.

Requirements:
- Length: 200-400 words
- Structure: brief overview, 3-5 key points, brief conclusion
- Tone: educational, clear, engaging
- Format: clear paragraphs, no bullet points unless listing specific items

Transcript:
{transcript}

Summary:"""

QUIZ_SYSTEM = """You are an expert educational quiz generator.
Output MUST be valid JSON only. No markdown, no commentary.
JSON MUST match the schema shown in the user message exactly.
"""

QUIZ_USER_TEMPLATE = """Create an interactive quiz from this video transcript.

Requirements:
- {min_questions}-10 questions total
- Mix of question types: ~60% multiple_choice, ~40% true_false
- Difficulty distribution: ~30% easy, ~50% medium, ~20% hard
- Questions test understanding, not memorization
- timestamp: approximate second in the video where the topic appears

Return JSON with this exact shape:
{{
  "questions": [
    {{
      "id": "q1",
      "type": "multiple_choice",
      "question": "...",
      "options": ["...", "...", "...", "..."],
      "correct_answer": 0,
      "explanation": "...",
      "timestamp": 120,
      "difficulty": "easy"
    }},
    {{
      "id": "q2",
      "type": "true_false",
      "question": "...",
      "correct_answer": true,
      "explanation": "...",
      "timestamp": 350,
      "difficulty": "medium"
    }}
  ]
}}

correct_answer is 0-based for multiple_choice and MUST point to the correct option.

Transcript:
{transcript}
"""
