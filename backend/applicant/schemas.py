from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class InterviewRequest(_WireModel):
    company: str = ""
    job_description: str = Field(default="", alias="jobDescription")
    interview_mode: str = Field(default="technical", alias="interviewMode")
    initial_questions_only: bool = Field(default=False, alias="initialQuestionsOnly")


class HistoryMessage(BaseModel):
    role: str
    content: str


class ChatRequest(_WireModel):
    user_answer: str = Field(default="", alias="userAnswer")
    question: str = ""
    category: str = "General"
    difficulty: str = "Medium"
    company: str = ""
    interview_mode: str = Field(default="technical", alias="interviewMode")
    conversation_history: list[HistoryMessage] = Field(default_factory=list, alias="conversationHistory")
    generate_follow_up: bool = Field(default=True, alias="generateFollowUp")
    session_id: str | None = Field(default=None, alias="sessionId")


class FeedbackResponse(BaseModel):
    feedback: str
    strengths: list[str]
    improvements: list[str]
    score: int
    follow_up: str = ""
    follow_up_question: str | None = None
    follow_up_category: str | None = None


class VoiceRequest(_WireModel):
    text: str = ""
    voice_id: str | None = Field(default=None, alias="voiceId")
