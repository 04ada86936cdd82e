"""Load waypoint lists from route files.

Two formats are supported:

* TomTom itinerary (``.itn``): one waypoint per line as
  ``longitude|latitude|name|flag|`` with both coordinates multiplied by
  100000, e.g. ``845000|4801000|Start|4|``.
* JSON (``.json``): an array of ``{"latitude": .., "longitude": ..}``
  objects or of ``[latitude, longitude]`` pairs.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

from pyvehiclesim.exceptions import RouteFileError
from pyvehiclesim.geo import Wgs84

_logger = logging.getLogger(__name__)

# ITN coordinates are stored as integer degrees * 100000.
_ITN_SCALE = 100_000


def _checked(latitude: float, longitude: float, *, path: str, line: int | None) -> Wgs84:
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise RouteFileError(f"{path}: non-finite coordinate", path=path, line=line)
    if not -90.0 <= latitude <= 90.0 or not -180.0 <= longitude <= 180.0:
        raise RouteFileError(
            f"{path}: coordinate out of range ({latitude}, {longitude})",
            path=path,
            line=line,
        )
    return Wgs84(latitude, longitude)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise RouteFileError(f"Cannot read route file {path}: {exc}", path=str(path)) from exc
    except UnicodeDecodeError as exc:
        raise RouteFileError(f"Route file {path} is not UTF-8 text", path=str(path)) from exc


def parse_itn(text: str, *, source: str = "<itn>") -> list[Wgs84]:
    """Parse the contents of a TomTom ``.itn`` file."""
    waypoints: list[Wgs84] = []
    for number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        fields = line.split("|")
        if len(fields) < 2:
            raise RouteFileError(f"{source}:{number}: expected 'lon|lat|...'", path=source, line=number)
        try:
            longitude = int(fields[0]) / _ITN_SCALE
            latitude = int(fields[1]) / _ITN_SCALE
        except ValueError as exc:
            raise RouteFileError(
                f"{source}:{number}: invalid coordinate in {line!r}",
                path=source,
                line=number,
            ) from exc
        waypoints.append(_checked(latitude, longitude, path=source, line=number))
    return waypoints


def _json_point(item: Any, *, source: str, index: int) -> Wgs84:
    if isinstance(item, dict):
        lat = item.get("latitude", item.get("lat"))
        lon = item.get("longitude", item.get("lon", item.get("lng")))
    elif isinstance(item, (list, tuple)) and len(item) == 2:
        lat, lon = item
    else:
        raise RouteFileError(f"{source}: waypoint #{index} has an unsupported shape", path=source)

    numeric = all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (lat, lon))
    if not numeric:
        raise RouteFileError(f"{source}: waypoint #{index} needs numeric latitude/longitude", path=source)
    return _checked(float(lat), float(lon), path=source, line=None)


def parse_json(text: str, *, source: str = "<json>") -> list[Wgs84]:
    """Parse a JSON waypoint array."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RouteFileError(f"{source}: invalid JSON: {exc}", path=source, line=exc.lineno) from exc
    if not isinstance(data, list):
        raise RouteFileError(f"{source}: expected a JSON array of waypoints", path=source)
    return [_json_point(item, source=source, index=index) for index, item in enumerate(data)]


def load_itn(path: str | Path) -> list[Wgs84]:
    path = Path(path)
    return parse_itn(_read_text(path), source=str(path))


def load_json(path: str | Path) -> list[Wgs84]:
    path = Path(path)
    return parse_json(_read_text(path), source=str(path))


def load_route(path: str | Path) -> list[Wgs84]:
    """Load waypoints from *path*, choosing the format by file suffix."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".itn":
        waypoints = load_itn(path)
    elif suffix == ".json":
        waypoints = load_json(path)
    else:
        raise RouteFileError(f"Unsupported route file type {suffix!r} (expected .itn or .json)", path=str(path))

    _logger.debug("Loaded %d waypoints from %s", len(waypoints), path)
    return waypoints
