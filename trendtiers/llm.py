"""
LLM content generation.

Calls an OpenAI-compatible chat completion API to rank researched products into
tiers and to write short per-product reviews.
"""
from __future__ import annotations

import json
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from openai import OpenAI

from .config import Settings
from .models import ResearchedProduct

LOGGER = logging.getLogger(__name__)

REVIEW_BATCH_SIZE = 3
REVIEW_BATCH_PAUSE_SECONDS = 1.0
MIN_REVIEW_LENGTH = 10

TIERLIST_SYSTEM_PROMPT = (
    "You are an expert product reviewer who creates detailed, honest tier lists. "
    "Always provide balanced, informative reviews."
)
REVIEW_SYSTEM_PROMPT = (
    "You are a professional product reviewer who writes concise, informative reviews "
    "focusing on key features and use cases. Keep reviews between 20-40 words."
)
TIER_CONTEXT = "S=exceptional, A=great, B=good, C=basic"


@dataclass
class ReviewRequest:
    name: str
    tier: str = "A"
    category: str = "products"


def extract_json(text: str | None) -> dict | None:
    """
    Pull a JSON object out of model output.
    Handles bare JSON, fenced code blocks and JSON embedded in prose.
    """
    if not text or not text.strip():
        return None
    raw = text.strip()

    def _try_parse(candidate: str) -> dict | None:
        s = (candidate or "").strip()
        if not s:
            return None
        try:
            parsed = json.loads(s)
        except json.JSONDecodeError:
            repaired = s.replace("“", '"').replace("”", '"').replace("﻿", "")
            repaired = re.sub(r",\s*([}\]])", r"\1", repaired)
            try:
                parsed = json.loads(repaired)
            except json.JSONDecodeError:
                return None
        return parsed if isinstance(parsed, dict) else None

    parsed = _try_parse(raw)
    if parsed is not None:
        return parsed

    fenced = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", raw, re.DOTALL)
    if fenced:
        parsed = _try_parse(fenced.group(1))
        if parsed is not None:
            return parsed

    start = raw.find("{")
    end = raw.rfind("}")
    if start != -1 and end > start:
        return _try_parse(raw[start : end + 1])
    return None


def build_tierlist_prompt(category: str, products: Sequence[ResearchedProduct]) -> str:
    listing = "\n".join(
        f"{index}. {product.name}\nSpecs: {product.specs}\nReviews: {product.reviews}\n"
        for index, product in enumerate(products, start=1)
    )
    return f"""You are an expert product reviewer creating a comprehensive tier list for "{category}".

Here are the products to rank and review:

{listing}
Please create a tier list ranking these products into S, A, and B tiers based on:
- Performance and quality
- Value for money
- User satisfaction
- Build quality and features

For each product, write a concise 1-2 sentence review explaining why it's in that tier.

Also generate:
1. A catchy title for this tier list
2. A compelling 2-sentence description for SEO
3. A 3-4 sentence introduction paragraph
4. A brief summary paragraph
5. Relevant tags (5-7 tags)

Format your response as JSON:
{{
  "title": "...",
  "description": "...",
  "introduction": "...",
  "summary": "...",
  "tags": ["tag1", "tag2"],
  "tiers": {{
    "S": [{{"name": "Product Name", "review": "Review text"}}],
    "A": [{{"name": "Product Name", "review": "Review text"}}],
    "B": [{{"name": "Product Name", "review": "Review text"}}]
  }}
}}"""


def build_review_prompt(request: ReviewRequest) -> str:
    return f"""Write a concise, informative product review for the {request.name} in the {request.category} category.

Requirements:
- 1-2 sentences maximum (20-40 words)
- Focus on key strengths and use cases
- Professional, helpful tone
- No marketing fluff or excessive adjectives
- Tier {request.tier} quality level context ({TIER_CONTEXT})
- Include specific technical benefits or standout features

Product: {request.name}
Review:"""


class ContentGenerationError(RuntimeError):
    """Raised when the model response cannot be used."""


class ContentGenerator:
    """Chat completion wrapper shared by the generator and the review pass."""

    def __init__(self, settings: Settings, client: Any | None = None) -> None:
        self.settings = settings
        if client is None:
            client = OpenAI(
                api_key=settings.require_llm(),
                base_url=settings.openai_base_url,
            )
        self._client = client
        self.model = settings.openai_model

    def _complete(self, system: str, prompt: str, *, max_tokens: int) -> str:
        response = self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=0.7,
            max_tokens=max_tokens,
        )
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        return (choices[0].message.content or "").strip()

    def generate_tierlist(
        self, category: str, products: Sequence[ResearchedProduct]
    ) -> dict:
        """Ask the model to rank ``products`` and return the decoded payload."""

        LOGGER.info("Generating tier list content for %r (%s products)", category, len(products))
        text = self._complete(
            TIERLIST_SYSTEM_PROMPT,
            build_tierlist_prompt(category, products),
            max_tokens=2000,
        )
        payload = extract_json(text)
        if payload is None:
            raise ContentGenerationError("Model response did not contain a JSON object")
        tiers = payload.get("tiers")
        if not isinstance(tiers, dict) or not tiers:
            raise ContentGenerationError("Model response is missing tiers")
        if not str(payload.get("title") or "").strip():
            raise ContentGenerationError("Model response is missing a title")
        return payload

    def generate_review(self, request: ReviewRequest) -> Optional[str]:
        """Return a short review, or ``None`` when the model call fails."""

        try:
            review = self._complete(
                REVIEW_SYSTEM_PROMPT, build_review_prompt(request), max_tokens=100
            )
        except Exception as exc:
            LOGGER.error("Error generating review for %s: %s", request.name, exc)
            return None
        review = review.strip().strip('"').strip()
        if len(review) <= MIN_REVIEW_LENGTH:
            LOGGER.warning("Invalid review generated for %s", request.name)
            return None
        return review

    def generate_reviews(
        self,
        requests: Sequence[ReviewRequest],
        *,
        batch_size: int = REVIEW_BATCH_SIZE,
        pause: float = REVIEW_BATCH_PAUSE_SECONDS,
        sleep=time.sleep,
    ) -> List[Optional[str]]:
        """Generate reviews in fixed-size concurrent batches, keeping input order."""

        batch_size = max(1, batch_size)
        results: List[Optional[str]] = []
        total_batches = (len(requests) + batch_size - 1) // batch_size
        for start in range(0, len(requests), batch_size):
            batch = list(requests[start : start + batch_size])
            LOGGER.info("Processing review batch %s/%s", start // batch_size + 1, total_batches)
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                results.extend(executor.map(self.generate_review, batch))
            if start + batch_size < len(requests) and pause > 0:
                sleep(pause)
        return results
