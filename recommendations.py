"""
Shade Recommendation Client
Asks a chat-completions model for product shades that suit a skin profile and
turns the makeup results into try-on overrides
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import requests

import config
from catalog import EffectType


logger = logging.getLogger(__name__)


class RecommendationError(Exception):
    """The recommendation service failed or returned something unusable."""


@dataclass
class SkinProfile:
    skin_tone: str = ""
    undertone: str = ""
    concerns: List[str] = field(default_factory=list)


@dataclass
class Recommendation:
    product_name: str
    brand: str = ""
    shade: str = ""
    price: Optional[float] = None
    why_it_suits: str = ""
    category: str = ""
    product_type: str = ""
    rgb: Optional[Tuple[int, int, int]] = None

    @property
    def label(self) -> str:
        parts = [p for p in (self.brand, self.product_name, self.shade) if p]
        return " - ".join(parts)

    def as_override(self):
        """
        Returns:
            (rgb, EffectType, label) for makeup with a color, otherwise None
        """
        effect_type = EffectType.parse(self.product_type)
        if effect_type is None or self.rgb is None:
            return None
        return self.rgb, effect_type, self.label


def build_system_prompt(profile: SkinProfile, search_query: str) -> str:
    concerns = ", ".join(profile.concerns) if profile.concerns else "None"

    return f"""You are an expert makeup and skincare consultant specializing in Indian beauty brands.
Analyze the user's face characteristics and provide personalized product shade recommendations based on their query.

Face Analysis Data:
- Skin Tone: {profile.skin_tone or 'Not detected'}
- Undertone: {profile.undertone or 'Not detected'}
- Concerns: {concerns}

User is searching for: "{search_query}"

Provide 3-5 specific product recommendations from Indian brands (like Minimalist, Sugar Cosmetics, Lakme, Mamaearth, MyGlamm) that:
1. Match their skin tone and undertone perfectly
2. Address their concerns
3. Are relevant to their search query
4. Include specific shade names and why they suit this person

Return your response as a JSON array with this structure:
[
  {{
    "productName": "Exact product name",
    "brand": "Brand name",
    "shade": "Specific shade name",
    "price": price in rupees (number),
    "whyItSuits": "2-3 sentence explanation of why this shade suits their skin tone/undertone/concerns",
    "category": "skincare or makeup",
    "type": "lipstick/foundation/blush/eyeshadow/serum/moisturizer/etc",
    "rgbColor": {{"r": number (0-255), "g": number (0-255), "b": number (0-255)}}
  }}
]

IMPORTANT: For makeup products (lipstick, foundation, blush, eyeshadow), you MUST include accurate RGB color values that represent the actual shade. For skincare products, use neutral skin-tone colors."""


_FENCED_JSON = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)
_BARE_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


def extract_json_payload(text: str) -> str:
    match = _FENCED_JSON.search(text)
    if match:
        return match.group(1)

    match = _BARE_ARRAY.search(text)
    if match:
        return match.group(0)

    return text


def _text(value) -> str:
    # JSON null means the field is absent
    return "" if value is None else str(value).strip()


def _parse_rgb(value) -> Optional[Tuple[int, int, int]]:
    if not isinstance(value, dict):
        return None
    try:
        return tuple(int(min(max(float(value[k]), 0), 255)) for k in ("r", "g", "b"))
    except (KeyError, TypeError, ValueError):
        return None


def _parse_price(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_recommendations(text: str) -> List[Recommendation]:
    """
    Parse the model reply into recommendations

    Raises:
        RecommendationError: if the reply does not hold a JSON array
    """
    try:
        items = json.loads(extract_json_payload(text))
    except json.JSONDecodeError as e:
        raise RecommendationError("Failed to parse AI recommendations") from e

    if not isinstance(items, list):
        raise RecommendationError("Failed to parse AI recommendations")

    recommendations = []
    for item in items:
        if not isinstance(item, dict) or not item.get("productName"):
            logger.warning("Skipping malformed recommendation: %r", item)
            continue

        recommendations.append(Recommendation(
            product_name=str(item["productName"]),
            brand=_text(item.get("brand")),
            shade=_text(item.get("shade")),
            price=_parse_price(item.get("price")),
            why_it_suits=_text(item.get("whyItSuits")),
            category=_text(item.get("category")),
            product_type=_text(item.get("type")),
            rgb=_parse_rgb(item.get("rgbColor")),
        ))

    return recommendations


def build_search_query(query: str, product_types: Sequence[EffectType] = ()) -> str:
    """Fold the chosen product types into the free-text query"""
    query = query.strip()
    wanted = " or ".join(t.value for t in product_types)

    if not wanted:
        return query
    if not query:
        return wanted
    return f"{query} ({wanted})"


class RecommendationClient:

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: str = config.RECOMMENDATION_URL,
        model: str = config.RECOMMENDATION_MODEL,
        timeout: float = config.RECOMMENDATION_TIMEOUT,
        http=None,
    ):
        self.api_key = api_key if api_key is not None else os.getenv("TRYON_RECOMMENDATION_API_KEY")
        if not self.api_key:
            raise ValueError("TRYON_RECOMMENDATION_API_KEY is not configured")

        self.url = url
        self.model = model
        self.timeout = timeout
        self.http = http if http is not None else requests

    def recommend(
        self,
        profile: SkinProfile,
        search_query: str,
        product_types: Sequence[EffectType] = (),
    ) -> List[Recommendation]:
        """
        Ask the model for recommendations

        When product_types is given, the query names them and only results of
        those types are returned.
        """
        search_query = build_search_query(search_query, product_types)
        logger.info("Requesting shade recommendations for %r", search_query)

        payload: Dict = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": build_system_prompt(profile, search_query)},
                {"role": "user", "content": f"Find me: {search_query}"},
            ],
        }

        try:
            response = self.http.post(
                self.url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RecommendationError(f"Recommendation service unreachable: {e}") from e

        if response.status_code == 429:
            raise RecommendationError("Rate limit exceeded. Please try again later.")
        if response.status_code == 402:
            raise RecommendationError("AI usage limit reached. Please add credits to continue.")
        if not response.ok:
            logger.error("AI gateway error: %s %s", response.status_code, response.text)
            raise RecommendationError("AI gateway error")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise RecommendationError("Unexpected response from recommendation service") from e

        logger.debug("AI response: %s", content)
        recommendations = parse_recommendations(content)

        if product_types:
            wanted = set(product_types)
            kept = [r for r in recommendations if EffectType.parse(r.product_type) in wanted]
            if len(kept) < len(recommendations):
                logger.info("Dropped %d recommendations outside %s",
                            len(recommendations) - len(kept), sorted(t.value for t in wanted))
            recommendations = kept

        return recommendations
