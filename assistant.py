# assistant.py - Clinical assistant chat proxy

"""
Forwards chat messages to a Groq-hosted LLM (OpenAI-compatible API) with the
current analysis as context. Works on a snapshot of session state only and
never writes back to the session.
"""

import logging
from typing import Dict, List, Any, Optional

import requests

from config import Settings, PLACEHOLDER_API_KEY
from materials import MATERIALS, BONE_SITES, format_number

logger = logging.getLogger(__name__)

NO_RESPONSE = "No response generated."


class AssistantError(RuntimeError):
    """Assistant unavailable or upstream call failed"""


def build_context(snapshot: Dict[str, Any]) -> str:
    """Flatten a session snapshot into the text context sent to the assistant"""
    patient = snapshot.get('patient') or {}
    material_id = snapshot.get('material_id')
    bone_id = snapshot.get('bone_site_id')
    mat = MATERIALS.get(material_id)
    bone = BONE_SITES.get(bone_id)
    breakdown = snapshot.get('breakdown')

    if mat:
        material_line = (f"Selected Biomaterial: {mat.label} ({mat.category}, elastic modulus: "
                         f"{format_number(mat.elastic_modulus)} GPa, yield strength: {format_number(mat.yield_strength)} MPa)")
    else:
        material_line = f"Selected Biomaterial: {material_id} (unknown, elastic modulus: ? GPa, yield strength: ? MPa)"

    if breakdown:
        breakdown_line = (
            f"Score Breakdown — Stiffness Match: {breakdown['stiffness_match']}, "
            f"Biocompatibility: {breakdown['biocompatibility']}, "
            f"Osseointegration: {breakdown['osseointegration']}, "
            f"Corrosion Resistance: {breakdown['corrosion_resistance']}, "
            f"Weight Load: {breakdown['weight_load']}"
        )
        overall = breakdown['overall']
    else:
        breakdown_line = "No breakdown available yet."
        overall = 0

    return "\n".join([
        f"Patient: {patient.get('name') or 'Unknown'}, Age: {patient.get('age') or 'N/A'}, "
        f"Blood Group: {patient.get('blood_group') or 'N/A'}, Weight: {format_number(snapshot.get('weight_kg'))} kg, "
        f"Urgency: {patient.get('urgency', 'moderate')}",
        f"Target Bone: {bone.label if bone else bone_id}",
        material_line,
        f"Overall Compatibility Score: {overall}/100",
        breakdown_line,
    ])


def build_system_prompt(context: str) -> str:
    return f"""You are BIO-MATCH's AI clinical assistant — an expert in orthopedic biomaterials and implant science.

CURRENT ANALYSIS CONTEXT:
{context}

STRICT RULES:
1. ALWAYS start every reply with: ⚠️ Educational purposes only. Always consult a qualified orthopedic surgeon or physician before making any medical decisions.
2. Only answer questions related to biomaterials, implants, orthopedics, bones, or this specific analysis.
3. Use clear, compassionate language — explain medical terms when used.
4. Never diagnose, prescribe, or replace professional medical advice.
5. Keep responses concise (3–5 sentences) unless detail is truly needed."""


def build_messages(messages: List[Dict[str, str]], context: str) -> List[Dict[str, str]]:
    """
    Assemble the completion payload: system prompt, prior history, last user turn.

    Raises:
        AssistantError: empty history or malformed message entries
    """
    if not messages:
        raise AssistantError("At least one message is required")

    history = []
    for m in messages:
        if not isinstance(m, dict) or m.get('role') not in ('user', 'assistant') or not isinstance(m.get('content'), str):
            raise AssistantError(f"Malformed chat message: {m!r}")
        history.append({'role': m['role'], 'content': m['content']})

    return (
        [{'role': 'system', 'content': build_system_prompt(context)}] +
        history[:-1] +
        [{'role': 'user', 'content': history[-1]['content']}]
    )


class GroqChatClient:
    """Minimal client for Groq's OpenAI-compatible chat completions endpoint"""

    def __init__(self, api_key: str, model: str = "llama-3.3-70b-versatile",
                 base_url: str = "https://api.groq.com/openai/v1",
                 temperature: float = 0.5, max_tokens: int = 500,
                 timeout: float = 30.0):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "GroqChatClient":
        return cls(
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            base_url=settings.groq_base_url,
            temperature=settings.chat_temperature,
            max_tokens=settings.chat_max_tokens,
            timeout=settings.chat_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    def chat(self, messages: List[Dict[str, str]], context: str) -> str:
        """
        Send the conversation with analysis context and return the reply text.

        Raises:
            AssistantError: key not configured, HTTP or network failure
        """
        if not self.configured:
            raise AssistantError(
                "GROQ_API_KEY is not configured. Add it to .env and restart the server."
            )

        payload = {
            'model': self.model,
            'messages': build_messages(messages, context),
            'temperature': self.temperature,
            'max_tokens': self.max_tokens,
        }

        try:
            response = requests.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={'Authorization': f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Groq request failed: {e}")
            raise AssistantError(f"AI error: {e}") from e

        choices = data.get('choices') or []
        content: Optional[str] = None
        if choices:
            content = (choices[0].get('message') or {}).get('content')
        logger.info(f"Assistant replied ({len(content or '')} chars)")
        return content.strip() if content else NO_RESPONSE
