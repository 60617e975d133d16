from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from odontogram.schemas.catalog import BilledItem
from odontogram.schemas.odontogram import OdontogramState
from odontogram.services.chart_mutator import compute_odontogram_state_from_items
from odontogram.services.layer_rules import derive_chart_layers

logger = logging.getLogger("odontogram.cli")

_items_adapter = TypeAdapter(list[BilledItem])


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def _load_chart(path: Path) -> OdontogramState:
    return OdontogramState.model_validate(_read_json(path))


def _layers_payload(state: OdontogramState) -> dict[str, list[str]]:
    return {tooth: sorted(layers) for tooth, layers in derive_chart_layers(state).items()}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect odontogram charts from the command line.")
    commands = parser.add_subparsers(dest="command", required=True)

    layers = commands.add_parser("layers", help="Print the visible layers of every tooth.")
    layers.add_argument("chart", type=Path, help="Chart JSON file.")

    apply = commands.add_parser("apply", help="Apply billed items to a chart and print the result.")
    apply.add_argument("chart", type=Path, help="Chart JSON file used as the starting state.")
    apply.add_argument("items", type=Path, help="JSON list of billed items with resolvedLayers.")

    for sub in (layers, apply):
        sub.add_argument("--output-json", default="", help="Also write the result to this path.")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    try:
        state = _load_chart(args.chart)
        if args.command == "apply":
            items = _items_adapter.validate_python(_read_json(args.items))
            result: Any = compute_odontogram_state_from_items(items, base=state).model_dump(
                mode="json", by_alias=True
            )
        else:
            result = _layers_payload(state)
    except (OSError, ValueError, ValidationError) as exc:
        logger.error("Could not process chart: %s", exc)
        return 1

    if args.output_json:
        _write_json(Path(args.output_json), result)
    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
