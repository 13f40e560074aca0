"""
Hosted-model wrapper: receipt extraction, item categorization, spending
insights and free-text question answering.

Talks to any OpenAI-compatible chat-completions endpoint (Gemini's by
default). Only extraction raises; the other operations fall back to safe
defaults when the model is unreachable or replies with garbage.
"""
from __future__ import annotations

import base64
import json
import logging
from typing import Any, Optional

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from app.config import Settings, settings
from app.schemas import (
    Categorization,
    CategoryTotal,
    ExtractedReceiptData,
    GeneratedInsight,
    INSIGHT_TYPES,
)

logger = logging.getLogger(__name__)

CATEGORIES = [
    "Groceries",
    "Electronics",
    "Clothing",
    "Restaurants",
    "Subscriptions",
    "Utilities",
    "General Merchandise",
]

FALLBACK_CATEGORY = Categorization(category="General Merchandise", confidence="0.1")
FALLBACK_INSIGHT = GeneratedInsight(
    insight_text="Keep tracking your spending for better insights!",
    insight_type="general",
)
EMPTY_ANSWER = (
    "I'm here to help with your financial questions! "
    "Could you tell me more about what you'd like to know?"
)
FAILED_ANSWER = "I'm having trouble processing your request right now. Please try again."

EXTRACTION_PROMPT = """You are a receipt data extraction expert.
Analyze this receipt image and extract the following information as a JSON object:
- store_name: string (the name of the store/business)
- transaction_date: string (in YYYY-MM-DD format, if not found use null)
- total_amount: number (the final total amount paid, as a number)
- tax_amount: number (the tax amount, as a number, if not found use null)
- line_items: array of objects, where each object has:
  - description: string (item name/description)
  - quantity: number (quantity purchased)
  - price: number (total price for this line item as a number)

Important guidelines:
- Extract all amounts as numbers (no currency symbols)
- If you cannot determine a value, use null
- For line_items, only include actual purchased items, not subtotals or fees
- Be as accurate as possible with the extracted data
- If the image is unclear or not a receipt, return all null values"""

CATEGORIZE_PROMPT = (
    "Given the item description: '{description}', categorize it into one of the "
    "following: {categories}. Also provide a confidence score from 0 to 1. "
    'Respond only with JSON format: {{"category": "category_name", "confidence": "0.95"}}'
)

INSIGHT_PROMPT = """Analyze this user's spending data for the last 30 days. Identify one key insight. \
This could be a trend (e.g., spending on 'Restaurants' is up 20%), a new recurring subscription, \
or an opportunity to save (e.g., 'They buy Brand X coffee every week; Brand Y is cheaper'). \
Formulate this insight as a short, actionable sentence. Respond in JSON format: \
{{"insightText": "Your spending on restaurants is trending up this month.", "insightType": "trend"}}

Spending data: {spending}"""

ASSISTANT_PROMPT = """You are Raseed, an AI financial assistant specializing in receipt management \
and spending analysis. You can analyze the user's receipts and spending patterns, point out \
trends, suggest ways to save money, help track purchases and build shopping lists, and help \
with budgeting.

You have access to the user's real receipt data below. When referencing specific purchases, \
dates, or amounts, use the actual data.

User Context and Data: {context}

Guidelines:
- Be conversational yet professional
- Provide specific, actionable advice
- Reference actual purchase data when relevant
- Ask clarifying questions when needed
- Suggest concrete next steps"""


class ExtractionError(Exception):
    """The model could not turn an image into receipt data."""


def image_data_url(image: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"


class ReceiptAIService:

    def __init__(self, config: Settings = settings, client: Optional[Any] = None):
        self.config = config
        self._client = client

    @property
    def client(self):
        # created lazily so the app starts without credentials
        if self._client is None:
            self._client = OpenAI(
                api_key=self.config.LLM_API_KEY or None,
                base_url=self.config.LLM_BASE_URL or None,
                timeout=self.config.LLM_TIMEOUT,
            )
        return self._client

    def _complete(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        json_mode: bool = False,
        **params,
    ) -> str:
        kwargs: dict[str, Any] = dict(params)
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        completion = self.client.chat.completions.create(
            model=model or self.config.LLM_MODEL,
            messages=messages,
            **kwargs,
        )
        if not completion.choices:
            return ""
        return (completion.choices[0].message.content or "").strip()

    # ── extraction ───────────────────────────────────────────────────────
    def extract_receipt_data(self, image: bytes, mime_type: str) -> ExtractedReceiptData:
        logger.info("Extracting receipt data: %d bytes (%s)", len(image), mime_type)
        messages = [
            {"role": "system", "content": EXTRACTION_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Extract the receipt data from this image."},
                    {"type": "image_url", "image_url": {"url": image_data_url(image, mime_type)}},
                ],
            },
        ]
        try:
            raw = self._complete(messages, json_mode=True)
        except OpenAIError as e:
            logger.error("Receipt extraction request failed: %s", e)
            raise ExtractionError(f"Failed to extract receipt data: {e}") from e

        logger.debug("Raw extraction response: %s", raw)
        if not raw:
            raise ExtractionError("Failed to extract receipt data: empty response from model")
        try:
            return ExtractedReceiptData.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.error("Unusable extraction response: %s", e)
            raise ExtractionError(f"Failed to extract receipt data: {e}") from e

    # ── categorization ───────────────────────────────────────────────────
    def categorize_item(self, description: str) -> Categorization:
        prompt = CATEGORIZE_PROMPT.format(
            description=description,
            categories=", ".join(f"'{c}'" for c in CATEGORIES),
        )
        try:
            raw = self._complete(
                [{"role": "user", "content": prompt}],
                model=self.config.LLM_FAST_MODEL,
                json_mode=True,
            )
            if not raw:
                raise ValueError("empty response from model")
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        except (OpenAIError, ValueError) as e:
            logger.error("Error categorizing item %r: %s", description, e)
            return FALLBACK_CATEGORY.model_copy()

        return Categorization(
            category=str(data.get("category") or "General Merchandise"),
            confidence=str(data.get("confidence") or "0.5"),
        )

    # ── insights ─────────────────────────────────────────────────────────
    def generate_spending_insight(self, spending: list[CategoryTotal]) -> GeneratedInsight:
        payload = json.dumps([s.model_dump() for s in spending])
        try:
            raw = self._complete(
                [{"role": "user", "content": INSIGHT_PROMPT.format(spending=payload)}],
                json_mode=True,
            )
            if not raw:
                raise ValueError("empty response from model")
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        except (OpenAIError, ValueError) as e:
            logger.error("Error generating insight: %s", e)
            return FALLBACK_INSIGHT.model_copy()

        insight_type = data.get("insightType")
        if insight_type not in INSIGHT_TYPES:
            logger.warning("Unknown insight type %r; using 'general'", insight_type)
            insight_type = "general"
        return GeneratedInsight(
            insight_text=str(data.get("insightText") or FALLBACK_INSIGHT.insight_text),
            insight_type=insight_type,
        )

    # ── question answering ───────────────────────────────────────────────
    def answer_query(self, message: str, context: Optional[dict] = None) -> str:
        system = ASSISTANT_PROMPT.format(context=json.dumps(context or {}, default=str))
        try:
            answer = self._complete(
                [
                    {"role": "system", "content": system},
                    {"role": "user", "content": message},
                ],
                temperature=0.7,
                top_p=0.8,
            )
        except OpenAIError as e:
            logger.error("Error processing user query: %s", e)
            return FAILED_ANSWER
        return answer or EMPTY_ANSWER
