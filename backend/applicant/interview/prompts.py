INTERVIEW_MODES = {
    "technical": {
        "label": "Technical",
        "question_focus": (
            "technologies and skills named in the job description, algorithm and data structure "
            "problems relevant to the role, system design where applicable, and practical problem solving"
        ),
        "categories": "Algorithm, Data Structures, System Design, Language Specific, Problem Solving",
    },
    "behavioral": {
        "label": "Behavioral",
        "question_focus": (
            "past experience, teamwork, conflict resolution, ownership, and handling ambiguity, "
            "answered with concrete situations and measurable results"
        ),
        "categories": "Teamwork, Leadership, Conflict Resolution, Ownership, Communication",
    },
}


def normalize_mode(mode: str | None) -> str:
    key = str(mode or "").strip().lower()
    return key if key in INTERVIEW_MODES else "technical"


def build_questions_prompt(company: str, job_description: str, interview_mode: str, count: int) -> str:
    mode = INTERVIEW_MODES[normalize_mode(interview_mode)]
    return f"""
You are creating {mode["label"].lower()} interview questions for a position at {company}.
The job description is: "{job_description[:4000]}"

Generate {count} interview questions that:
1. Focus on {mode["question_focus"]}
2. Are commonly asked at companies similar to {company}
3. Progress from warm-up to harder questions

Return a JSON object with a "questions" array. Each item has:
- "question": the interview question
- "category": one of {mode["categories"]}, or another short label
- "difficulty": "Easy", "Medium" or "Hard"
"""


def build_feedback_prompt(
    company: str,
    interview_mode: str,
    question: str,
    category: str,
    difficulty: str,
    user_answer: str,
    history_block: str,
    generate_follow_up: bool,
) -> str:
    mode = INTERVIEW_MODES[normalize_mode(interview_mode)]
    follow_up_rule = (
        '- "follow_up_question": the next interview question, adapted to the answer (dig deeper into a weak '
        'spot, or move to a new topic when the answer was strong)\n'
        '- "follow_up_category": short category label for that question'
        if generate_follow_up
        else '- "follow_up_question": null'
    )
    return f"""
You are a {mode["label"].lower()} interviewer at {company}.

Recent conversation:
{history_block or "(none)"}

You asked ({category}, {difficulty}): "{question}"
The candidate answered: "{user_answer[:4000]}"

Evaluate the answer and return a JSON object with:
- "feedback": 2-3 sentences of professional, encouraging feedback
- "strengths": list of 1-3 short strengths
- "improvements": list of 1-3 short improvements
- "score": integer from 1 (poor) to 5 (excellent)
- "follow_up": one short conversational remark to the candidate
{follow_up_rule}
"""
