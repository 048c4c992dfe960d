"""
Mock Client - Deterministic Offline Provider

Returns canned JSON-line suggestions chosen by keywords found in the
prompt. Used for demos, local development and tests that need a real
provider shape without network access.
"""

import json
import unicodedata
from typing import List, Tuple

from clinical_suggestion_pipeline.clients.llm_client import BaseLLMClient


MAX_MOCK_SUGGESTIONS = 5


def _line(suggestion_type: str, content: str) -> str:
    return json.dumps({"type": suggestion_type, "content": content}, ensure_ascii=False)


# (keywords, canned suggestions) checked in order
KEYWORD_SUGGESTIONS: List[Tuple[Tuple[str, ...], List[str]]] = [
    (
        ("dolor", "pain"),
        [
            _line(
                "recommendation",
                "Utilizar escala EVA para valoración del dolor y evaluar la efectividad "
                "de analgésicos previamente administrados.",
            ),
            _line(
                "warning",
                "Verificar interacciones medicamentosas antes de prescribir antiinflamatorios "
                "no esteroideos.",
            ),
        ],
    ),
    (
        ("hipertension", "presion arterial", "hypertension", "blood pressure"),
        [
            _line(
                "recommendation",
                "Monitorizar presión arterial cada 4 horas y evaluar adherencia al tratamiento "
                "antihipertensivo.",
            ),
            _line(
                "info",
                "La hipertensión no controlada aumenta el riesgo cardiovascular. Considerar "
                "evaluación de órganos diana.",
            ),
        ],
    ),
    (
        ("diabetes", "glucosa", "glucose"),
        [
            _line(
                "recommendation",
                "Monitorizar niveles de glucemia y verificar administración correcta de insulina "
                "según pauta.",
            ),
            _line(
                "warning",
                "Evaluar signos de hipoglucemia o hiperglucemia y adaptar el plan terapéutico "
                "si es necesario.",
            ),
        ],
    ),
    (
        ("fiebre", "temperatura", "fever"),
        [
            _line(
                "recommendation",
                "Administrar antitérmicos si temperatura >38.5°C y considerar estudios para "
                "identificar foco infeccioso.",
            ),
            _line(
                "warning",
                "Monitorizar signos de sepsis ante fiebre persistente. Vigilar presión arterial, "
                "frecuencia cardíaca y nivel de consciencia.",
            ),
        ],
    ),
]

DEFAULT_SUGGESTIONS: List[str] = [
    _line(
        "recommendation",
        "Realizar evaluación integral de signos vitales y documentar en la historia clínica.",
    ),
    _line("info", "Verificar cumplimiento del esquema de vacunación según la edad del paciente."),
    _line("warning", "Comprobar alergias medicamentosas antes de prescribir cualquier fármaco."),
]


def _normalize(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


class MockLLMClient(BaseLLMClient):
    """
    Keyword-driven canned responses.

    Matching is case- and accent-insensitive. Keyword-specific suggestions
    come first, then the defaults, capped at five lines.

    Example:
        >>> client = MockLLMClient()
        >>> text = await client.generate("Paciente con dolor lumbar")
        >>> text.splitlines()[0].startswith('{"type": "recommendation"')
        True
    """

    def __init__(self, model_name: str = "mock-clinical"):
        super().__init__(model_name=model_name)

    async def _call_api(self, prompt: str) -> str:
        normalized = _normalize(prompt)

        lines: List[str] = []
        for keywords, suggestions in KEYWORD_SUGGESTIONS:
            if any(keyword in normalized for keyword in keywords):
                lines.extend(suggestions)

        lines.extend(DEFAULT_SUGGESTIONS)
        return "\n".join(lines[:MAX_MOCK_SUGGESTIONS])

    @property
    def provider_name(self) -> str:
        return "mock"
