"""
Application data models
"""

from typing import List, Optional, Literal
from pydantic import BaseModel, Field


Provider = Literal["openai", "claude", "gemini", "grok"]
ModelTier = Literal["smart", "normal", "fast"]


class Message(BaseModel):
    """Chat message model"""
    role: Literal["user", "assistant", "system"]
    content: str


class ChatOptions(BaseModel):
    """Tutor options for the chat route"""
    subject: Optional[str] = None
    topic: Optional[str] = None
    level: Optional[Literal["beginner", "intermediate", "advanced"]] = None


class ChatRequest(BaseModel):
    """/api/ai/chat request body"""
    messages: List[Message]
    feature: Literal["answer", "homework", "tutor"]
    options: Optional[ChatOptions] = None
    provider: Optional[Provider] = None
    model: Optional[ModelTier] = None


class DetectRequest(BaseModel):
    """/api/ai/detect request body"""
    text: str = Field(min_length=50, max_length=50000)
    provider: Optional[Provider] = None
    model: Optional[ModelTier] = None


class EssayRequest(BaseModel):
    """/api/ai/essay request body"""
    topic: str = Field(min_length=3, max_length=500)
    word_count: int = Field(alias="wordCount", ge=100, le=5000)
    academic_level: Literal[
        "high-school", "igcse", "ged", "othm", "undergraduate", "graduate"
    ] = Field(alias="academicLevel")
    citation_style: Optional[Literal["apa", "mla", "harvard", "chicago", "none"]] = Field(
        default=None, alias="citationStyle"
    )
    essay_type: Optional[Literal[
        "argumentative", "expository", "narrative", "descriptive", "persuasive"
    ]] = Field(default=None, alias="essayType")
    provider: Optional[Provider] = None
    model: Optional[ModelTier] = None

    class Config:
        populate_by_name = True


class HumanizeRequest(BaseModel):
    """/api/ai/humanize request body"""
    text: str = Field(min_length=10, max_length=50000)
    tone: Literal["formal", "casual", "academic", "natural"] = "natural"
    intensity: Literal["light", "balanced", "heavy"] = "balanced"
    preserve_meaning: bool = Field(default=True, alias="preserveMeaning")
    provider: Optional[Provider] = None
    model: Optional[ModelTier] = None

    class Config:
        populate_by_name = True


class StudyGuideRequest(BaseModel):
    """/api/ai/study-guide request body"""
    topic: str = Field(min_length=1, max_length=5000)
    subject: str = Field(default="general", min_length=1, max_length=100)
    level: str = "igcse"
    guide_format: Literal["comprehensive", "outline", "flashcards", "questions"] = Field(
        default="comprehensive", alias="format"
    )
    notes: str = ""
    provider: Optional[Provider] = None
    model: Optional[ModelTier] = None

    class Config:
        populate_by_name = True


class PresentationRequest(BaseModel):
    """/api/ai/presentation request body"""
    topic: str = Field(min_length=1, max_length=5000)
    slide_count: int = Field(default=8, alias="slides", ge=3, le=30)
    style: Literal["professional", "modern", "minimal", "creative"] = "professional"
    audience: str = "general audience"
    details: str = ""
    include_notes: bool = Field(default=True, alias="includeNotes")
    provider: Optional[Provider] = None
    model: Optional[ModelTier] = None

    class Config:
        populate_by_name = True


class SlideData(BaseModel):
    """One slide of a parsed outline"""
    title: str
    bullets: List[str] = []
    notes: Optional[str] = None


class PptxRequest(BaseModel):
    """/api/ai/presentation/generate-pptx request body"""
    topic: str = Field(min_length=1, max_length=5000)
    slides: Optional[List[SlideData]] = None
    outline: Optional[str] = None
    slide_count: int = Field(default=8, alias="slideCount", ge=1, le=30)
    style: str = "professional"

    class Config:
        populate_by_name = True


class ThesysPrompt(BaseModel):
    """User turn sent to the tutor relay"""
    role: Literal["user"] = "user"
    content: str


class ThesysRequest(BaseModel):
    """/api/ai/thesys request body"""
    prompt: ThesysPrompt
    thread_id: str = Field(alias="threadId", min_length=1)
    response_id: str = Field(alias="responseId", min_length=1)
    model: Optional[ModelTier] = None

    class Config:
        populate_by_name = True


class ProfileUpdate(BaseModel):
    """PUT /api/user/profile request body"""
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    ai_provider: Optional[Provider] = Field(default=None, alias="aiProvider")

    class Config:
        populate_by_name = True


class CreditRewardRequest(BaseModel):
    """POST /api/user/credits/reward request body"""
    source: Literal["rewarded_ad"] = "rewarded_ad"
