from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from lastturn.engine.types import CardDatabase, CardDefinition, MatchConfig


class ContentError(RuntimeError):
    pass


_MAX_REPORTED_ERRORS = 10


def _load_json(path: Path) -> object:
    if not path.is_file():
        raise ContentError(f"Content file not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ContentError(f"{path.name} is not valid JSON (line {e.lineno}, column {e.colno}): {e.msg}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    errors = list(Draft202012Validator(schema).iter_errors(instance))
    if not errors:
        return
    errors.sort(key=lambda e: list(map(str, e.absolute_path)))
    lines = [f"{context} does not match its schema ({len(errors)} problem(s)):"]
    for err in errors[:_MAX_REPORTED_ERRORS]:
        loc = "/".join(str(p) for p in err.absolute_path) or "<root>"
        lines.append(f"  {loc}: {err.message}")
    raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Card field {key!r} must be a string")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContentError(f"Card field {key!r} must be an integer")
    return v


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def _load_validated(self, name: str) -> dict[str, object]:
        path = self._data_dir / f"{name}.json"
        raw = _load_json(path)
        schema = _load_json(self._schema_dir / f"{name}.schema.json")
        validate_json(raw, schema, context=str(path))
        if not isinstance(raw, dict):
            raise ContentError(f"{name}.json must be an object")
        return raw

    def load_cards_db(self) -> CardDatabase:
        raw = self._load_validated("cards")
        raw_cards = raw.get("cards")
        if not isinstance(raw_cards, list):
            raise ContentError("cards.json.cards must be a list")

        cards: dict[str, CardDefinition] = {}
        for item in raw_cards:
            if not isinstance(item, dict):
                continue
            card = CardDefinition(
                id=_require_str(item, "id"),
                name=_require_str(item, "name"),
                damage=_require_int(item, "damage"),
                health=_require_int(item, "health"),
            )
            if card.id in cards:
                raise ContentError(f"Duplicate card id: {card.id}")
            cards[card.id] = card
        return CardDatabase(cards=cards)

    def load_rules(self) -> MatchConfig:
        raw = self._load_validated("rules")
        # Schema already restricts keys and types; missing keys keep dataclass defaults.
        return MatchConfig(**raw)  # type: ignore[arg-type]

    def validate_all(self) -> None:
        # Both loaders check the schema and then the parsed values.
        _ = self.load_cards_db()
        _ = self.load_rules()
