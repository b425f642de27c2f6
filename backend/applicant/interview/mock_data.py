# ---------- STATIC FALLBACK QUESTIONS ----------

MOCK_QUESTIONS = {
    "technical": [
        {"question": "Walk me through a recent project you are proud of and the technical decisions you made.", "category": "Problem Solving", "difficulty": "Easy"},
        {"question": "How would you detect a cycle in a linked list, and what is the complexity of your approach?", "category": "Data Structures", "difficulty": "Medium"},
        {"question": "Design a URL shortening service. How would you store and scale it?", "category": "System Design", "difficulty": "Hard"},
        {"question": "How do you debug a production issue that you cannot reproduce locally?", "category": "Problem Solving", "difficulty": "Medium"},
        {"question": "Explain the difference between a process and a thread, and when you would use each.", "category": "Language Specific", "difficulty": "Medium"},
    ],
    "behavioral": [
        {"question": "Tell me about yourself and what draws you to this role.", "category": "Communication", "difficulty": "Easy"},
        {"question": "Describe a time you disagreed with a teammate. How did you resolve it?", "category": "Conflict Resolution", "difficulty": "Medium"},
        {"question": "Tell me about a project where you had to take ownership without being asked.", "category": "Ownership", "difficulty": "Medium"},
        {"question": "Describe a situation where requirements were unclear. What did you do?", "category": "Leadership", "difficulty": "Medium"},
        {"question": "Tell me about a failure and what you changed afterwards.", "category": "Teamwork", "difficulty": "Hard"},
    ],
}

MOCK_FOLLOW_UPS = {
    "technical": [
        ("What trade-offs did you consider, and what would you change with more time?", "Problem Solving"),
        ("How would your approach change if the input were a hundred times larger?", "System Design"),
        ("How would you test that solution before shipping it?", "Problem Solving"),
    ],
    "behavioral": [
        ("What was the measurable outcome, and what did you learn from it?", "Ownership"),
        ("How did the other people involved react, and what would you do differently?", "Teamwork"),
        ("How did you communicate progress to stakeholders during that time?", "Communication"),
    ],
}

# ---------- MOCK SCORING SIGNALS ----------

STRUCTURE_KEYWORDS = (
    "for example", "for instance", "because", "result", "as a result", "situation",
    "task", "action", "first", "then", "finally", "trade-off", "tradeoff",
)

IMPACT_KEYWORDS = (
    "%", "percent", "reduced", "increased", "improved", "saved", "latency",
    "throughput", "customers", "users", "revenue", "deadline",
)

TECHNICAL_KEYWORDS = (
    "complexity", "o(n", "hash", "cache", "index", "database", "queue", "api",
    "thread", "memory", "scal", "test", "algorithm", "pointer",
)
