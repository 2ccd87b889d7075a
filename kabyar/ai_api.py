"""
AI feature endpoints
"""

import re

import orjson
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.concurrency import run_in_threadpool

from .auth import Session, require_session
from .errors import ClientAbortedError, InsufficientCreditsError, InvalidMessagesError
from .helpers import (
    count_words,
    debug_log,
    error_log,
    request_stage_log,
    reset_request_context,
)
from .prompts import (
    EssayOptions,
    HumanizeOptions,
    PresentationOptions,
    StudyGuideOptions,
    TutorOptions,
    create_answer_prompt,
    create_detector_prompt,
    create_essay_prompt,
    create_homework_prompt,
    create_humanizer_prompt,
    create_presentation_prompt,
    create_study_guide_prompt,
    create_tutor_prompt,
)
from .providers.base import AIMessage
from .schemas import (
    ChatRequest,
    DetectRequest,
    EssayRequest,
    HumanizeRequest,
    PptxRequest,
    PresentationRequest,
    StudyGuideRequest,
    ThesysRequest,
)
from .services.generation_service import CONTEXT_KEYS, GenerationService, get_generation_service
from .services.presentation import build_pptx, parse_slides
from .services.thesys_service import ThesysRelayService, get_thesys_service

router = APIRouter(prefix="/api/ai")

# study-guide format -> prompt depth
FORMAT_TO_DEPTH = {
    "comprehensive": "comprehensive",
    "outline": "overview",
    "flashcards": "detailed",
    "questions": "detailed",
}

HUMANIZE_USER_TEMPLATE = '''REWRITE THIS TEXT COMPLETELY. Do NOT just edit it - write it fresh in your own words as if you are a human explaining the same ideas. The goal is 0% AI detection.

TEXT TO REWRITE:
"""
{text}
"""

Remember:
- NO AI phrases (Furthermore, Moreover, In conclusion, It is important, etc.)
- USE contractions (don't, can't, it's)
- VARY sentence lengths wildly
- ADD personal voice and opinions
- Write like a real human, not an AI'''

PRESENTATION_FORMAT = """Format every slide exactly like this:
## Slide title
- Bullet point
- Bullet point
Speaker notes: what to say on this slide

Separate slides with a line containing only ---"""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def _fail(message: str, exc: Exception) -> HTTPException:
    reset_request_context(*CONTEXT_KEYS)
    error_log(f"[REQUEST] {message}", error=str(exc), error_type=type(exc).__name__)
    return HTTPException(status_code=500, detail=message)


def parse_detection(content: str) -> dict:
    """Model output as JSON, or a neutral result wrapping the raw text."""
    candidate = _CODE_FENCE.sub("", content.strip())
    try:
        result = orjson.loads(candidate)
    except orjson.JSONDecodeError:
        result = None

    if isinstance(result, dict):
        return result

    debug_log("[DETECT] model returned non-JSON output")
    return {
        "aiScore": 50,
        "humanScore": 50,
        "analysis": content,
        "indicators": [],
        "suggestions": [],
    }


@router.post("/chat")
async def chat(
    body: ChatRequest,
    session: Session = Depends(require_session),
    service: GenerationService = Depends(get_generation_service),
):
    """Answer finder, homework helper and subject tutor"""
    request_stage_log("received", "Chat request received", feature=body.feature, message_count=len(body.messages))
    try:
        context = service.begin(session.user_id, body.feature, body.provider, body.model)

        if body.feature == "homework":
            system_prompt = create_homework_prompt()
        elif body.feature == "tutor":
            options = body.options
            system_prompt = create_tutor_prompt(TutorOptions(
                subject=(options and options.subject) or "General",
                topic=(options and options.topic) or "General topic",
                level=(options and options.level) or "intermediate",
                question="",
            ))
        else:
            system_prompt = create_answer_prompt()

        messages = [AIMessage(role="system", content=system_prompt)]
        messages.extend(AIMessage(role=m.role, content=m.content) for m in body.messages)

        return await service.stream_response(context, messages)
    except (HTTPException, InsufficientCreditsError):
        raise
    except InvalidMessagesError:
        reset_request_context(*CONTEXT_KEYS)
        raise
    except Exception as e:
        raise _fail("Failed to process chat", e)


@router.post("/detect")
async def detect(
    body: DetectRequest,
    session: Session = Depends(require_session),
    service: GenerationService = Depends(get_generation_service),
):
    request_stage_log("received", "Detection request received", words=count_words(body.text))
    try:
        context = service.begin(session.user_id, "detector", body.provider, body.model, priced_text=body.text)
        messages = [
            AIMessage(role="system", content=create_detector_prompt()),
            AIMessage(role="user", content=f"Analyze this text for AI-generated content:\n\n{body.text}"),
        ]
        response = await service.complete(context, messages)
        return JSONResponse(parse_detection(response.content))
    except (HTTPException, InsufficientCreditsError):
        raise
    except Exception as e:
        raise _fail("Failed to analyze text", e)


@router.post("/essay")
async def essay(
    body: EssayRequest,
    session: Session = Depends(require_session),
    service: GenerationService = Depends(get_generation_service),
):
    request_stage_log("received", "Essay request received", word_count=body.word_count, level=body.academic_level)
    try:
        context = service.begin(session.user_id, "essay", body.provider, body.model, words=body.word_count)
        options = EssayOptions(
            topic=body.topic,
            word_count=body.word_count,
            academic_level=body.academic_level,
            citation_style=body.citation_style,
            essay_type=body.essay_type,
        )
        messages = [
            AIMessage(role="system", content=create_essay_prompt(options)),
            AIMessage(role="user", content=f"Please write an essay about: {options.topic}"),
        ]
        return await service.stream_response(context, messages)
    except (HTTPException, InsufficientCreditsError):
        raise
    except Exception as e:
        raise _fail("Failed to generate essay", e)


@router.post("/humanize")
async def humanize(
    body: HumanizeRequest,
    session: Session = Depends(require_session),
    service: GenerationService = Depends(get_generation_service),
):
    request_stage_log("received", "Humanize request received", tone=body.tone, intensity=body.intensity)
    try:
        context = service.begin(session.user_id, "humanizer", body.provider, body.model, priced_text=body.text)
        options = HumanizeOptions(
            text=body.text,
            tone=body.tone,
            intensity=body.intensity,
            preserve_meaning=body.preserve_meaning,
        )
        messages = [
            AIMessage(role="system", content=create_humanizer_prompt(options)),
            AIMessage(role="user", content=HUMANIZE_USER_TEMPLATE.format(text=body.text)),
        ]
        return await service.stream_response(context, messages)
    except (HTTPException, InsufficientCreditsError):
        raise
    except Exception as e:
        raise _fail("Failed to humanize text", e)


@router.post("/study-guide")
async def study_guide(
    body: StudyGuideRequest,
    session: Session = Depends(require_session),
    service: GenerationService = Depends(get_generation_service),
):
    request_stage_log("received", "Study guide request received", guide_format=body.guide_format)
    try:
        context = service.begin(session.user_id, "study_guide", body.provider, body.model)
        options = StudyGuideOptions(
            topic=body.topic,
            subject=body.subject,
            depth=FORMAT_TO_DEPTH.get(body.guide_format, "comprehensive"),
            include_examples=body.guide_format != "flashcards",
            include_questions=body.guide_format in ("questions", "comprehensive"),
        )

        user_message = f"Create a study guide about: {options.topic}"
        user_message += f"\nSubject: {options.subject}"
        user_message += f"\nLevel: {body.level or 'igcse'}"
        user_message += f"\nFormat: {body.guide_format}"
        if body.notes:
            user_message += f"\nSpecific focus areas: {body.notes}"

        messages = [
            AIMessage(role="system", content=create_study_guide_prompt(options)),
            AIMessage(role="user", content=user_message),
        ]
        return await service.stream_response(context, messages)
    except (HTTPException, InsufficientCreditsError):
        raise
    except Exception as e:
        raise _fail("Failed to generate study guide", e)


@router.post("/presentation")
async def presentation(
    body: PresentationRequest,
    session: Session = Depends(require_session),
    service: GenerationService = Depends(get_generation_service),
):
    request_stage_log("received", "Presentation request received", slides=body.slide_count, style=body.style)
    try:
        context = service.begin(session.user_id, "presentation", body.provider, body.model)
        options = PresentationOptions(
            topic=body.topic,
            slide_count=body.slide_count,
            audience=body.audience,
            include_notes=body.include_notes,
        )

        user_message = f"Create a {body.slide_count}-slide presentation about: {body.topic}"
        user_message += f"\nStyle: {body.style}"
        if body.details:
            user_message += f"\nAdditional details: {body.details}"
        user_message += f"\n\n{PRESENTATION_FORMAT}"

        messages = [
            AIMessage(role="system", content=create_presentation_prompt(options)),
            AIMessage(role="user", content=user_message),
        ]
        return await service.stream_response(context, messages)
    except (HTTPException, InsufficientCreditsError):
        raise
    except Exception as e:
        raise _fail("Failed to generate presentation", e)


@router.post("/presentation/generate-pptx")
async def generate_pptx(body: PptxRequest, session: Session = Depends(require_session)):
    """Render slides (or a raw outline) into a base64 .pptx"""
    slides = body.slides
    if not slides and body.outline:
        slides = parse_slides(body.outline, body.slide_count)

    if not body.topic.strip() or not slides:
        raise HTTPException(status_code=400, detail="Missing required fields")

    request_stage_log("received", "PPTX render requested", slides=len(slides), style=body.style)
    try:
        rendered = await run_in_threadpool(build_pptx, body.topic, slides, body.style)
    except Exception as e:
        raise _fail("Failed to generate presentation", e)

    request_stage_log("completed", "PPTX rendered", filename=rendered["filename"])
    return {"success": True, "data": rendered["data"], "filename": rendered["filename"]}


@router.post("/thesys")
async def thesys(
    body: ThesysRequest,
    request: Request,
    session: Session = Depends(require_session),
    service: GenerationService = Depends(get_generation_service),
    relay: ThesysRelayService = Depends(get_thesys_service),
):
    """Interactive tutor relay (text/event-stream)"""
    request_stage_log("received", "Tutor turn received", thread_id=body.thread_id, response_id=body.response_id)
    context = service.begin(session.user_id, "tutor", "thesys", body.model)
    try:
        upstream = await relay.open_stream(body, request.is_disconnected)
    except ClientAbortedError:
        service.refund(context)
        reset_request_context(*CONTEXT_KEYS)
        raise
    except Exception as e:
        service.refund(context)
        raise _fail("Failed to process chat", e)

    reset_request_context(*CONTEXT_KEYS)
    return StreamingResponse(
        upstream,
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "Connection": "keep-alive",
        },
    )


@router.delete("/thesys/{thread_id}")
async def delete_thread(
    thread_id: str,
    session: Session = Depends(require_session),
    relay: ThesysRelayService = Depends(get_thesys_service),
):
    deleted = relay.store.delete(thread_id)
    request_stage_log("thread_deleted", "Tutor thread deleted", thread_id=thread_id, existed=deleted)
    return {"success": True, "deleted": deleted}


@router.get("/thesys/threads")
async def list_threads(
    session: Session = Depends(require_session),
    relay: ThesysRelayService = Depends(get_thesys_service),
):
    return {"threads": relay.store.thread_ids()}
