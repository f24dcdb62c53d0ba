"""
AI Service
Document analysis, clause Q&A, assistant chat and contract comparison on Claude.
Primary-path calls raise classified errors; conversational calls never raise.
"""

import base64
import json
import logging
import re
from typing import Any, Awaitable, Dict, List, Optional, Sequence, TypeVar

import anthropic
from pydantic import ValidationError

from legallens.config import Settings, get_settings
from legallens.core.errors import (
    AnalysisError,
    ErrorKind,
    InputValidationError,
    classify_error,
)
from legallens.schemas.domain import (
    ChatMessage,
    ComparisonResult,
    Contract,
    ContractAnalysis,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

API_KEY_MISSING = "API Key missing."
CLAUSE_FALLBACK = "Sorry, I couldn't answer that right now due to a connection issue."
CHAT_FALLBACK = "Sorry, I'm having trouble connecting right now. Please try again."
EMPTY_ANSWER = "Could not generate an answer."
EMPTY_CHAT_REPLY = "I couldn't generate a response."
BRIEFING_REQUEST = "Please brief me on this difference and what it means for me in simple terms."


# Output schemas
ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "summary": {
            "type": "string",
            "description": "A plain-English summary of the legal contract, suitable for a non-expert.",
        },
        "overallRisk": {
            "type": "string",
            "enum": ["Low", "Medium", "High"],
            "description": "The overall risk level of the contract based on the severity of clauses.",
        },
        "riskScore": {
            "type": "integer",
            "description": (
                "A numerical risk score from 0 (completely safe) to 100 (extremely risky). "
                "High risk contracts should be >70, Medium 40-70, Low <40. "
                "If not a legal document, set to 0."
            ),
        },
        "clauses": {
            "type": "array",
            "description": "Significant clauses found in the contract, especially those with potential risks.",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "A unique identifier such as 'clause-1'."},
                    "text": {"type": "string", "description": "The original text of the clause."},
                    "explanation": {"type": "string", "description": "What this clause means, in simple English."},
                    "riskLevel": {"type": "string", "enum": ["Low", "Medium", "High"]},
                    "riskyKeywords": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Words or phrases in the text that trigger the risk.",
                    },
                    "reason": {
                        "type": "string",
                        "description": "The type of risk (e.g. 'Payment Risk') and why it is risky.",
                    },
                },
                "required": ["id", "text", "explanation", "riskLevel", "riskyKeywords", "reason"],
            },
        },
        "fullText": {
            "type": "string",
            "description": "The full raw text transcribed from the document (OCR).",
        },
    },
    "required": ["summary", "overallRisk", "riskScore", "clauses", "fullText"],
}

COMPARISON_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "recommendedId": {
            "type": "string",
            "description": "The ID of the contract that is safer or more favorable to the user.",
        },
        "reasoning": {
            "type": "string",
            "description": "A concise explanation of why the recommended contract is better.",
        },
        "keyDifferences": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Bullet points highlighting the main differences between the contracts.",
        },
    },
    "required": ["recommendedId", "reasoning", "keyDifferences"],
}


# System Prompts
JSON_OUTPUT_PROMPT = """Respond with a single JSON object and nothing else.
The object MUST validate against this JSON schema:

{schema}"""

ANALYSIS_PROMPT = """You are an expert legal aide for non-lawyers. Analyze this document.

Task 1: Optical Character Recognition (OCR)
Extract and transcribe the full text of the document into the 'fullText' field. Be as accurate as possible.

Task 2: Document Classification & Risk Analysis
First, determine if the document contains legal terms, obligations, or contractual language.

IF THE DOCUMENT IS NOT A LEGAL CONTRACT (e.g., a receipt, a random image, a simple letter, or text without legal obligations):
- Set 'overallRisk' to "Low".
- Set 'riskScore' to 0.
- In the 'summary', clearly state: "This document does not appear to contain any legal terms or binding obligations."
- Return an empty list for 'clauses' or a single clause stating it is safe.

IF IT IS A CONTRACT, strictly evaluate risk levels based on the following criteria:

1. HIGH RISK:
   - Unlimited liability.
   - Unilateral termination without cause.
   - Waiver of rights (jury trial, class action).
   - Automatic renewal with difficult cancellation.

2. MEDIUM RISK:
   - Ambiguous terms.
   - Unbalanced indemnification.
   - Long notice periods.

3. LOW RISK:
   - Standard boilerplate.
   - Mutual obligations.
   - Clear pricing.

Identify key clauses. For each clause:
1. Simple English: Explain the clause in plain, simple English suitable for a 6th grader.
2. Risk Type: In the 'reason' field, START with the type of risk (e.g., "Payment Risk", "Termination Risk", "Data Privacy Risk", "Liability Risk").
3. No Statutes: Do NOT mention specific section numbers of any external law, statute, or act. If you must refer to legal concepts, use "general contract law principles".
4. Disclaimer: Implicitly suggest in the explanation that for specific legal interpretations, one should consult a lawyer.

Return the result in the specified JSON format."""

CLAUSE_QUESTION_PROMPT = """Context: The user is asking about a specific legal clause.
Clause: "{clause_text}"

User Question: "{question}"

Answer the question simply and clearly for a layperson. Do NOT cite specific external law sections. Keep it brief."""

CHAT_PROMPT = """You are LegalLens AI, a helpful legal assistant specialized in contract analysis.
{instructions}"""

CHAT_CONTRACT_INSTRUCTIONS = """
CURRENT CONTRACT CONTEXT:
{context}

INSTRUCTIONS:
1. Cite Contract Sections: You MAY reference specific section numbers found within the document itself (e.g., "Clause 4.1 of this agreement").
2. NO External Statutes: Do NOT cite specific section numbers of external laws, acts, or codes. Use "general contract law principles" instead.
3. Simple English: Explain concepts simply.
4. Disclaimer: Always conclude serious risk assessments with a recommendation to consult a qualified attorney."""

CHAT_GENERAL_INSTRUCTIONS = """
INSTRUCTIONS:
- You are currently not viewing a specific contract.
- Answer general legal questions or guide the user on how to use the app.
- Remind the user they can upload a contract for specific analysis."""

COMPARISON_PROMPT = """Compare these {count} contracts based on the provided analysis data.

{contracts_context}

Task:
1. Determine which contract is safest/best for the user.
2. Provide a short reasoning paragraph.
3. List key differences.

Return JSON matching the schema."""

DIFFERENCE_PROMPT = """You are an expert legal aide assisting a user who is comparing multiple contracts.

CONTEXT OF CONTRACTS:
{contracts_context}

FOCUS TOPIC:
The user is specifically asking about this identified difference: "{difference}"

INSTRUCTIONS:
- Explain simply how this difference manifests.
- Do NOT cite external law sections."""


# Failure policies

async def call_with_fallback(call: Awaitable[T], default: T) -> T:
    """Await call; on any failure log it and resolve to default."""
    try:
        return await call
    except Exception:
        logger.exception("AI call failed, answering with fallback")
        return default


async def call_or_propagate(call: Awaitable[T]) -> T:
    """Await call; re-raise any failure as a classified error."""
    try:
        return await call
    except Exception as e:
        classified = classify_error(e)
        logger.error("AI call failed (%s): %s", classified.kind.value, e)
        raise classified from e


def validate_document(data: bytes, mime_type: str, settings: Optional[Settings] = None):
    """Reject empty or unsupported documents before any backend call."""
    settings = settings or get_settings()
    if not data:
        raise InputValidationError("The document is empty.")
    if mime_type not in settings.allowed_mime_types:
        raise InputValidationError(
            f"Unsupported document type '{mime_type}'. Please upload PDF or Images."
        )


def parse_json_response(response_text: Optional[str]) -> Dict[str, Any]:
    """Parse a JSON object from model output, stripping markdown code fences."""
    if not response_text or not response_text.strip():
        raise AnalysisError("Empty response from AI service.", ErrorKind.MALFORMED_RESPONSE)

    content = response_text.strip()
    if content.startswith("```"):
        match = re.search(r'```(?:json)?\s*(.*?)\s*```', content, re.DOTALL | re.IGNORECASE)
        if match:
            content = match.group(1)

    try:
        if content.startswith("{"):
            return json.loads(content)

        start = content.find("{")
        end = content.rfind("}")
        if start != -1 and end != -1:
            return json.loads(content[start:end + 1])
    except json.JSONDecodeError as e:
        logger.error("Failed to parse JSON: %s", content[:500])
        raise AnalysisError(
            "Received an invalid response format from AI. Please retry.",
            ErrorKind.MALFORMED_RESPONSE,
        ) from e

    raise AnalysisError(
        "Received an invalid response format from AI. Please retry.",
        ErrorKind.MALFORMED_RESPONSE,
    )


def build_contract_context(contract: Contract, max_chars: Optional[int] = None) -> str:
    """Condensed description of a contract for the assistant's system prompt."""
    if not contract.analysis:
        return ""
    max_chars = max_chars or get_settings().contract_context_chars
    analysis = contract.analysis
    full_text = analysis.full_text[:max_chars] if analysis.full_text else "Not available"
    return (
        f"Filename: {contract.file_name}\n"
        f"Summary: {analysis.summary}\n"
        f"Overall Risk: {analysis.overall_risk.value}\n"
        f"Full Text: {full_text}"
    )


class AIService:
    """Claude-backed analysis client."""

    def __init__(self, settings: Optional[Settings] = None, client: Any = None):
        self.settings = settings or get_settings()

        if client is not None:
            self.client = client
        elif self.settings.anthropic_api_key:
            self.client = anthropic.AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        else:
            self.client = None

    # Document analysis

    async def analyze_document(self, data: bytes, mime_type: str) -> ContractAnalysis:
        """OCR and risk-analyze a document. Raises a classified error on failure."""
        validate_document(data, mime_type, self.settings)
        self._require_client()
        return await call_or_propagate(self._analyze_document(data, mime_type))

    async def _analyze_document(self, data: bytes, mime_type: str) -> ContractAnalysis:
        encoded = base64.standard_b64encode(data).decode("ascii")
        block_type = "document" if mime_type == "application/pdf" else "image"

        response = await self.client.messages.create(
            model=self.settings.analysis_model,
            max_tokens=self.settings.analysis_max_tokens,
            temperature=self.settings.analysis_temperature,
            system=JSON_OUTPUT_PROMPT.format(schema=json.dumps(ANALYSIS_SCHEMA, indent=2)),
            messages=[{
                "role": "user",
                "content": [
                    {
                        "type": block_type,
                        "source": {"type": "base64", "media_type": mime_type, "data": encoded},
                    },
                    {"type": "text", "text": ANALYSIS_PROMPT},
                ],
            }],
        )

        payload = parse_json_response(self._response_text(response))
        try:
            return ContractAnalysis.model_validate(payload)
        except ValidationError as e:
            raise AnalysisError(
                "Received an invalid response format from AI. Please retry.",
                ErrorKind.MALFORMED_RESPONSE,
            ) from e

    # Conversational calls

    async def answer_clause_question(self, clause_text: str, question: str) -> str:
        if self.client is None:
            return API_KEY_MISSING
        prompt = CLAUSE_QUESTION_PROMPT.format(clause_text=clause_text, question=question)
        return await call_with_fallback(
            self._complete(
                messages=[{"role": "user", "content": prompt}],
                model=self.settings.analysis_model,
                empty=EMPTY_ANSWER,
            ),
            CLAUSE_FALLBACK,
        )

    async def send_chat_message(
        self,
        history: Sequence[ChatMessage],
        new_message: str,
        contract_context: str = "",
    ) -> str:
        if self.client is None:
            return API_KEY_MISSING

        if contract_context:
            instructions = CHAT_CONTRACT_INSTRUCTIONS.format(context=contract_context)
        else:
            instructions = CHAT_GENERAL_INSTRUCTIONS

        return await call_with_fallback(
            self._complete(
                messages=self._chat_messages(history, new_message),
                system=CHAT_PROMPT.format(instructions=instructions),
                temperature=self.settings.chat_temperature,
            ),
            CHAT_FALLBACK,
        )

    # Comparison

    async def compare_contracts(self, contracts: Sequence[Contract]) -> ComparisonResult:
        """Pick the safest of 2-3 analyzed contracts. Raises on failure."""
        if not 2 <= len(contracts) <= self.settings.max_compare:
            raise InputValidationError(
                f"Select between 2 and {self.settings.max_compare} contracts to compare."
            )
        if any(c.analysis is None for c in contracts):
            raise InputValidationError("Only analyzed contracts can be compared.")
        self._require_client()
        return await call_or_propagate(self._compare_contracts(contracts))

    async def _compare_contracts(self, contracts: Sequence[Contract]) -> ComparisonResult:
        contracts_context = "\n\n----------------\n\n".join(
            f'DOCUMENT NAME: "{c.file_name}"\nDATA: {self._comparison_data(c)}'
            for c in contracts
        )
        prompt = COMPARISON_PROMPT.format(count=len(contracts), contracts_context=contracts_context)

        response = await self.client.messages.create(
            model=self.settings.analysis_model,
            max_tokens=self.settings.chat_max_tokens,
            system=JSON_OUTPUT_PROMPT.format(schema=json.dumps(COMPARISON_SCHEMA, indent=2)),
            messages=[{"role": "user", "content": prompt}],
        )

        payload = parse_json_response(self._response_text(response))
        try:
            return ComparisonResult.model_validate(payload)
        except ValidationError as e:
            raise AnalysisError(
                "Received an invalid response format from AI. Please retry.",
                ErrorKind.MALFORMED_RESPONSE,
            ) from e

    async def query_comparison_difference(
        self,
        history: Sequence[ChatMessage],
        new_message: str,
        contracts: Sequence[Contract],
        focused_difference: str,
    ) -> str:
        if self.client is None:
            return API_KEY_MISSING

        contracts_context = "\n\n".join(self._difference_context(c) for c in contracts)
        system = DIFFERENCE_PROMPT.format(
            contracts_context=contracts_context,
            difference=focused_difference,
        )
        return await call_with_fallback(
            self._complete(messages=self._chat_messages(history, new_message), system=system),
            CHAT_FALLBACK,
        )

    # Helpers

    def _require_client(self):
        if self.client is None:
            raise AnalysisError(
                "API Key is missing. Please set ANTHROPIC_API_KEY.",
                ErrorKind.AUTH,
            )

    async def _complete(
        self,
        messages: List[Dict[str, Any]],
        system: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        empty: str = EMPTY_CHAT_REPLY,
    ) -> str:
        """Plain-text completion."""
        kwargs: Dict[str, Any] = {
            "model": model or self.settings.chat_model,
            "max_tokens": self.settings.chat_max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = await self.client.messages.create(**kwargs)
        return self._response_text(response).strip() or empty

    def _chat_messages(self, history: Sequence[ChatMessage], new_message: str) -> List[Dict[str, Any]]:
        """
        Convert chat history to backend messages.
        Only the last chat_history_window turns are sent. The conversation
        must open with a user turn and alternate roles, so leading assistant
        turns are dropped and consecutive turns of one role are merged.
        """
        window = list(history)[-self.settings.chat_history_window:] if self.settings.chat_history_window else []
        turns = [*window, ChatMessage(role="user", text=new_message)]

        messages: List[Dict[str, Any]] = []
        for turn in turns:
            role = "assistant" if turn.role == "model" else "user"
            if not messages and role == "assistant":
                continue
            if messages and messages[-1]["role"] == role:
                messages[-1]["content"] += "\n\n" + turn.text
            else:
                messages.append({"role": role, "content": turn.text})
        return messages

    @staticmethod
    def _response_text(response: Any) -> str:
        response_text = ""
        for block in response.content:
            if block.type == "text":
                response_text += block.text
        return response_text

    @staticmethod
    def _comparison_data(contract: Contract) -> str:
        analysis = contract.analysis
        return json.dumps({
            "id": contract.id,
            "name": contract.file_name,
            "riskScore": analysis.risk_score,
            "overallRisk": analysis.overall_risk.value,
            "summary": analysis.summary,
            "keyClauses": [
                {"risk": clause.risk_level.value, "explanation": clause.explanation}
                for clause in analysis.clauses
            ],
        }, ensure_ascii=False)

    @staticmethod
    def _difference_context(contract: Contract) -> str:
        analysis = contract.analysis
        if analysis is None:
            return f'DOCUMENT: "{contract.file_name}"'
        clauses = "; ".join(f"{cl.explanation} ({cl.risk_level.value})" for cl in analysis.clauses)
        return (
            f'DOCUMENT: "{contract.file_name}"\n'
            f"SUMMARY: {analysis.summary}\n"
            f"RISK: {analysis.overall_risk.value} (Score: {analysis.risk_score})\n"
            f"CLAUSES: {clauses}"
        )


def get_ai_service() -> AIService:
    """FastAPI dependency returning an AI service for the configured key."""
    return AIService()
