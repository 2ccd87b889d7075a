"""
Route tests for /api/ai/* against fake providers
"""

import base64

from kabyar.prompts import create_answer_prompt, create_homework_prompt

ESSAY_BODY = {
    "topic": "Renewable energy",
    "wordCount": 500,
    "academicLevel": "igcse",
}

DETECT_TEXT = "This is a reasonably long paragraph written for detection tests. " * 2


def test_requires_session(client):
    response = client.post("/api/ai/essay", json=ESSAY_BODY)
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_rejects_wrong_token(client):
    response = client.post("/api/ai/essay", json=ESSAY_BODY, headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_essay_word_count_below_minimum(client, auth_headers, adapters):
    body = dict(ESSAY_BODY, wordCount=50)
    response = client.post("/api/ai/essay", json=body, headers=auth_headers)

    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "Invalid input"
    assert "wordCount" in [detail["field"] for detail in payload["details"]]
    assert adapters["grok"].calls == []


def test_essay_streams_chunks_in_order(client, auth_headers, adapters):
    response = client.post("/api/ai/essay", json=ESSAY_BODY, headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "Hello, world!"

    call = adapters["grok"].calls[0]
    assert call["op"] == "stream"
    assert call["api_key"] == "grok-key"
    assert call["model"] == "normal"
    system, user = call["messages"]
    assert system.role == "system"
    assert "Renewable energy" in system.content
    assert user.content == "Please write an essay about: Renewable energy"
    assert adapters["grok"].closed


def test_generation_charges_credits(client, auth_headers, ledger):
    client.post("/api/ai/essay", json=dict(ESSAY_BODY, wordCount=2500), headers=auth_headers)

    credits = client.get("/api/user/credits", headers=auth_headers).json()
    assert credits["creditsRemaining"] == 50 - 9
    assert credits["creditsUsed"] == 9


def test_insufficient_credits_returns_402_without_generation(client, auth_headers, adapters, ledger):
    ledger.set_remaining("student-1", 2)

    response = client.post("/api/ai/essay", json=dict(ESSAY_BODY, wordCount=2500), headers=auth_headers)

    assert response.status_code == 402
    assert response.json() == {
        "error": "Insufficient credits",
        "creditsNeeded": 9,
        "creditsRemaining": 2,
    }
    assert adapters["grok"].calls == []
    assert ledger.get_balance("student-1").remaining == 2


def test_provider_failure_is_generic_500(client, auth_headers, adapters, ledger):
    adapters["grok"].error = RuntimeError("upstream said: secret detail")

    response = client.post("/api/ai/essay", json=ESSAY_BODY, headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to generate essay"}
    assert "secret" not in response.text
    # failed generations are not billed
    assert ledger.get_balance("student-1").remaining == 50


def test_missing_api_key_is_generic_500(client, auth_headers, provider_router):
    provider_router._api_keys = {}

    response = client.post("/api/ai/humanize", json={"text": "Some text to rewrite."}, headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to humanize text"}


def test_request_provider_wins(client, auth_headers, adapters):
    body = dict(ESSAY_BODY, provider="gemini", model="smart")
    client.post("/api/ai/essay", json=body, headers=auth_headers)

    assert adapters["grok"].calls == []
    assert adapters["gemini"].calls[0]["model"] == "smart"


def test_profile_provider_is_default(client, auth_headers, adapters):
    client.put("/api/user/profile", json={"aiProvider": "claude"}, headers=auth_headers)

    response = client.post(
        "/api/ai/chat",
        json={"messages": [{"role": "user", "content": "What is 2+2?"}], "feature": "answer"},
        headers=auth_headers,
    )

    assert response.text == "Hello, world!"
    assert adapters["claude"].calls
    assert adapters["grok"].calls == []


def test_chat_features_pick_system_prompt(client, auth_headers, adapters):
    for feature, expected in (("answer", create_answer_prompt()), ("homework", create_homework_prompt())):
        client.post(
            "/api/ai/chat",
            json={"messages": [{"role": "user", "content": "Help"}], "feature": feature},
            headers=auth_headers,
        )
        messages = adapters["grok"].calls[-1]["messages"]
        assert messages[0].content == expected
        assert messages[-1].content == "Help"


def test_chat_tutor_options(client, auth_headers, adapters):
    client.post(
        "/api/ai/chat",
        json={
            "messages": [{"role": "user", "content": "Explain vectors"}],
            "feature": "tutor",
            "options": {"subject": "Physics", "level": "advanced"},
        },
        headers=auth_headers,
    )
    system = adapters["grok"].calls[0]["messages"][0].content
    assert "specializing in Physics" in system
    assert "Topic: General topic" in system
    assert "Student Level: advanced" in system


def test_chat_with_only_system_messages_is_rejected(client, auth_headers, ledger):
    response = client.post(
        "/api/ai/chat",
        json={"messages": [{"role": "system", "content": "x"}], "feature": "answer"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid input"
    assert body["details"][0]["field"] == "messages"
    assert ledger.get_balance("student-1").remaining == 50


def test_detect_returns_model_json(client, auth_headers, adapters):
    adapters["grok"].content = (
        '{"aiScore": 82, "humanScore": 18, "analysis": "Uniform rhythm.", '
        '"indicators": ["low burstiness"], "suggestions": ["vary sentences"]}'
    )

    response = client.post("/api/ai/detect", json={"text": DETECT_TEXT}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {
        "aiScore": 82,
        "humanScore": 18,
        "analysis": "Uniform rhythm.",
        "indicators": ["low burstiness"],
        "suggestions": ["vary sentences"],
    }
    user = adapters["grok"].calls[0]["messages"][1]
    assert user.content.startswith("Analyze this text for AI-generated content:")


def test_detect_accepts_fenced_json(client, auth_headers, adapters):
    adapters["grok"].content = '```json\n{"aiScore": 10, "humanScore": 90, "analysis": "", "indicators": [], "suggestions": []}\n```'

    response = client.post("/api/ai/detect", json={"text": DETECT_TEXT}, headers=auth_headers)
    assert response.json()["humanScore"] == 90


def test_detect_falls_back_on_plain_text(client, auth_headers, adapters):
    adapters["grok"].content = "Looks mostly human to me."

    response = client.post("/api/ai/detect", json={"text": DETECT_TEXT}, headers=auth_headers)

    assert response.json() == {
        "aiScore": 50,
        "humanScore": 50,
        "analysis": "Looks mostly human to me.",
        "indicators": [],
        "suggestions": [],
    }


def test_detect_text_too_short(client, auth_headers):
    response = client.post("/api/ai/detect", json={"text": "too short"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "text"


def test_humanize_embeds_text(client, auth_headers, adapters):
    body = {"text": "Furthermore, it is important to note the results.", "tone": "casual"}
    response = client.post("/api/ai/humanize", json=body, headers=auth_headers)

    assert response.status_code == 200
    system, user = adapters["grok"].calls[0]["messages"]
    assert "casual tone" in system.content
    assert body["text"] in user.content


def test_study_guide_user_message(client, auth_headers, adapters):
    body = {"topic": "Cell biology", "subject": "Biology", "format": "flashcards", "notes": "mitosis"}
    response = client.post("/api/ai/study-guide", json=body, headers=auth_headers)

    assert response.status_code == 200
    system, user = adapters["grok"].calls[0]["messages"]
    assert "Depth: detailed" in system.content
    assert "Include practical examples" not in system.content
    assert "Format: flashcards" in user.content
    assert "Specific focus areas: mitosis" in user.content


def test_presentation_streams_outline(client, auth_headers, adapters):
    body = {"topic": "Volcanoes", "slides": 5, "audience": "Year 9"}
    response = client.post("/api/ai/presentation", json=body, headers=auth_headers)

    assert response.status_code == 200
    system, user = adapters["grok"].calls[0]["messages"]
    assert "Number of slides: 5" in system.content
    assert "---" in user.content


def test_presentation_slide_count_bounds(client, auth_headers):
    response = client.post("/api/ai/presentation", json={"topic": "x", "slides": 40}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "slides"


def test_generate_pptx_from_outline(client, auth_headers):
    outline = "## Intro\n- What volcanoes are\n- Where they form\n---\n## Types\n- Shield\n- Composite"
    response = client.post(
        "/api/ai/presentation/generate-pptx",
        json={"topic": "Volcanoes & more", "outline": outline, "style": "modern"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["filename"] == "Volcanoes___more_presentation.pptx"
    assert base64.b64decode(payload["data"])[:2] == b"PK"


def test_generate_pptx_requires_slides(client, auth_headers):
    response = client.post(
        "/api/ai/presentation/generate-pptx",
        json={"topic": "Empty deck"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}
