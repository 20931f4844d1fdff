"""
Disposal Advisor client — asks a hosted language model which assets to
retire.

Two calls are offered:

  - ``suggest(criteria, assets)``: free-text criteria such as "laptops
    older than 4 years" plus the candidate assets; returns the ids the
    model picked.
  - ``evaluate(asset)``: a single asset; returns a ``DisposalVerdict``
    (dispose yes/no plus a reason).

The endpoint is any OpenAI-compatible ``chat/completions`` URL.  The
model answers in free text, so the reply is scanned for the first
``{`` or ``[`` and one JSON value is decoded from there.  The decoded
value is then checked against the expected shape: suggested ids must be
among the ids that were sent, and a verdict must carry a boolean and a
string.  Anything else degrades to "no suggestion" rather than an error.

Transport problems (missing key, network error, non-200, empty
envelope) raise ``DisposalAdvisorError``.  Nothing is retried or cached.

Configuration is read from Flask ``current_app.config``:
    - ``DISPOSAL_ADVISOR_API_URL``
    - ``DISPOSAL_ADVISOR_API_KEY``
    - ``DISPOSAL_ADVISOR_MODEL``
    - ``DISPOSAL_ADVISOR_TIMEOUT`` (seconds)
"""

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

import urllib3
from flask import current_app

from tech_inventory.models.asset import STATUS_DISPOSED

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are an IT asset management expert. Your task is to analyse "
    "hardware assets and decide which ones should be retired according "
    "to the user's criteria and the typical lifespan of each product type."
)

_SUGGEST_INSTRUCTIONS = (
    'Reply with JSON only, in the form {"ids": ["<asset id>", ...]}, '
    "listing the ids of the assets that match the criteria. "
    'Reply {"ids": []} if none match.'
)

_EVALUATE_INSTRUCTIONS = (
    "Consider the purchase date and the typical lifespan of the asset "
    'type. Reply with JSON only, in the form {"shouldDispose": true|false, '
    '"reason": "<detailed justification>"}.'
)

# Keys under which a model may wrap the list of suggested ids.
_ID_LIST_KEYS = ("ids", "assetIds", "asset_ids", "assets")


class DisposalAdvisorError(Exception):
    """The completion service could not be reached or gave no answer."""


@dataclass(frozen=True)
class DisposalVerdict:
    """Structured answer for a single-asset evaluation."""

    should_dispose: bool
    reason: str


class DisposalAdvisorClient:
    """
    Client for an OpenAI-compatible chat completion endpoint.

    Usage inside a Flask request or app context::

        client = DisposalAdvisorClient()
        ids = client.suggest("laptops older than 4 years", assets)
    """

    def __init__(self) -> None:
        self.api_url: str = current_app.config["DISPOSAL_ADVISOR_API_URL"]
        self.api_key: str = current_app.config.get("DISPOSAL_ADVISOR_API_KEY", "")
        self.model: str = current_app.config.get("DISPOSAL_ADVISOR_MODEL", "gpt-4")
        self.timeout: float = float(
            current_app.config.get("DISPOSAL_ADVISOR_TIMEOUT", 30)
        )

        logger.debug(
            "DisposalAdvisorClient initialized — url=%s, model=%s",
            self.api_url,
            self.model,
        )

    # =================================================================
    # Public API
    # =================================================================

    def suggest(
        self,
        criteria: str,
        assets: Iterable[Any],
        today: date | None = None,
    ) -> list[str]:
        """
        Ask the model which of ``assets`` match the disposal criteria.

        Disposed assets are never sent as candidates.

        Args:
            criteria: Free-text criteria typed by the admin.
            assets:   Asset records (ORM rows or objects with the same
                      attributes).
            today:    Reference date for asset age (defaults to today).

        Returns:
            Asset ids as strings, in the model's order, restricted to
            the candidates that were sent.  Empty when nothing matched
            or the reply could not be parsed.

        Raises:
            ValueError:           If ``criteria`` is blank.
            DisposalAdvisorError: If the completion request fails.
        """
        criteria = (criteria or "").strip()
        if not criteria:
            raise ValueError("Describe the assets to consider for disposal.")

        candidates = build_candidates(assets, today=today)
        if not candidates:
            return []

        user_message = (
            f"Criteria: {criteria}\n"
            f"Today's date: {(today or date.today()).isoformat()}\n"
            f"Assets:\n{json.dumps(candidates, indent=2)}\n\n"
            f"{_SUGGEST_INSTRUCTIONS}"
        )
        reply = self._complete(user_message)

        payload = extract_json(reply)
        if payload is None:
            logger.warning("Disposal suggestion reply had no parseable JSON")
            return []

        allowed = {candidate["id"] for candidate in candidates}
        ids = _validate_id_list(payload, allowed)
        logger.info(
            "Disposal suggestion: %d of %d candidates selected",
            len(ids),
            len(candidates),
        )
        return ids

    def evaluate(self, asset: Any, reason: str | None = None) -> DisposalVerdict | None:
        """
        Ask the model whether a single asset should be disposed of.

        Args:
            asset:  The asset to evaluate.
            reason: Optional reason the admin is considering disposal.

        Returns:
            A ``DisposalVerdict``, or None if the reply was malformed.

        Raises:
            DisposalAdvisorError: If the completion request fails.
        """
        details = (
            f"Product: {asset.product_type}, Model: {asset.model}, "
            f"Serial number: {asset.serial_number}, "
            f"Purchase date: {asset.purchase_date.isoformat()}"
        )
        user_message = f"Asset details: {details}\n"
        if reason:
            user_message += f"Disposal reason under consideration: {reason}\n"
        user_message += f"\n{_EVALUATE_INSTRUCTIONS}"

        payload = extract_json(self._complete(user_message))
        verdict = _validate_verdict(payload)
        if verdict is None:
            logger.warning(
                "Disposal evaluation for asset %s returned no usable verdict",
                getattr(asset, "id", None),
            )
        return verdict

    # =================================================================
    # HTTP transport
    # =================================================================

    def _complete(self, user_message: str) -> str:
        """
        Send one chat completion request and return the message text.

        Raises:
            DisposalAdvisorError: On any transport or envelope failure.
        """
        if not self.api_key:
            logger.warning("DISPOSAL_ADVISOR_API_KEY not configured")
            raise DisposalAdvisorError("The disposal advisor is not configured.")

        body = json.dumps(
            {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": user_message},
                ],
            }
        )
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            with urllib3.PoolManager() as http:
                response = http.request(
                    "POST",
                    self.api_url,
                    body=body,
                    headers=headers,
                    timeout=urllib3.Timeout(total=self.timeout),
                )
        except urllib3.exceptions.HTTPError as exc:
            logger.error("Disposal advisor request failed: %s", exc)
            raise DisposalAdvisorError("The disposal advisor is unreachable.") from exc

        if response.status != 200:
            logger.error("Disposal advisor returned status %d", response.status)
            raise DisposalAdvisorError(
                f"The disposal advisor returned HTTP {response.status}."
            )

        try:
            envelope = json.loads(response.data)
            content = envelope["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("Unexpected disposal advisor envelope: %s", exc)
            raise DisposalAdvisorError(
                "The disposal advisor returned an unexpected response."
            ) from exc

        if not content:
            raise DisposalAdvisorError("The disposal advisor returned no answer.")
        return content


# =========================================================================
# Prompt and reply helpers
# =========================================================================


def build_candidates(assets: Iterable[Any], today: date | None = None) -> list[dict]:
    """Describe non-disposed assets for the prompt, with their age in years."""
    today = today or date.today()
    candidates = []
    for asset in assets:
        if asset.status == STATUS_DISPOSED:
            continue
        age_years = round((today - asset.purchase_date).days / 365.25, 1)
        candidates.append(
            {
                "id": str(asset.id),
                "name": asset.name,
                "productType": asset.product_type,
                "model": asset.model,
                "serialNumber": asset.serial_number,
                "purchaseDate": asset.purchase_date.isoformat(),
                "ageYears": age_years,
                "status": asset.status,
            }
        )
    return candidates


def extract_json(text: str | None) -> Any:
    """
    Decode the first JSON value embedded in free text.

    Scanning starts at the first ``{`` or ``[``; leading commentary and
    anything after the decoded value are ignored.

    Returns:
        The decoded value, or None if no JSON value starts there.
    """
    if not text:
        return None
    starts = [pos for pos in (text.find("{"), text.find("[")) if pos != -1]
    if not starts:
        return None
    try:
        value, _ = json.JSONDecoder().raw_decode(text, min(starts))
    except ValueError:
        return None
    return value


def _validate_id_list(payload: Any, allowed: set[str]) -> list[str]:
    """Pull asset ids out of a decoded reply, keeping only known ids."""
    if isinstance(payload, dict):
        for key in _ID_LIST_KEYS:
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
        else:
            return []
    if not isinstance(payload, list):
        return []

    ids: list[str] = []
    for item in payload:
        if isinstance(item, dict):
            item = item.get("id")
        if isinstance(item, bool) or not isinstance(item, (str, int)):
            continue
        asset_id = str(item).strip()
        if asset_id in allowed and asset_id not in ids:
            ids.append(asset_id)
    return ids


def _validate_verdict(payload: Any) -> DisposalVerdict | None:
    if not isinstance(payload, dict):
        return None
    should_dispose = payload.get("shouldDispose")
    reason = payload.get("reason")
    if not isinstance(should_dispose, bool) or not isinstance(reason, str):
        return None
    return DisposalVerdict(should_dispose=should_dispose, reason=reason.strip())
