# =============================================================================
# Spatial Decoders
# =============================================================================
# Decoders for geometry-bearing formats:
# - KML: Placemarks -> GeoJSON features (property bag + geometry)
# - Shapefile ZIP: bundled .shp/.dbf/.shx/.prj -> features in EPSG:4326
# =============================================================================

import io
import logging
import tempfile
import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import geopandas as gpd

from agri_upload.errors import DecodeError
from agri_upload.models import GeoJSON, RawRecord

from .base import FormatDecoder

__all__ = ["KmlDecoder", "ShapefileZipDecoder", "TARGET_EPSG"]

log = logging.getLogger(__name__)

TARGET_EPSG = 4326


# -----------------------------------------------------------------------------
# KML
# -----------------------------------------------------------------------------
def _local(tag: str) -> str:
    """Strip the XML namespace from a tag ("{http://...}Placemark" -> "Placemark")."""
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def _text(element: Optional[ET.Element]) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _parse_coordinates(element: Optional[ET.Element]) -> List[List[float]]:
    """Parse a <coordinates> block ("lon,lat[,alt] lon,lat[,alt] ...")."""
    positions = []
    for token in _text(element).split():
        try:
            positions.append([float(part) for part in token.split(",") if part != ""])
        except ValueError:
            raise ValueError(f"invalid coordinate '{token}'") from None
    return positions


def _ring(boundary: Optional[ET.Element]) -> List[List[float]]:
    ring = _child(boundary, "LinearRing") if boundary is not None else None
    return _parse_coordinates(_child(ring, "coordinates") if ring is not None else None)


_GEOMETRY_TAGS = ("Point", "LineString", "LinearRing", "Polygon", "MultiGeometry")


def _geometry(element: ET.Element) -> Optional[GeoJSON]:
    kind = _local(element.tag)

    if kind == "Point":
        coords = _parse_coordinates(_child(element, "coordinates"))
        return {"type": "Point", "coordinates": coords[0]} if coords else None

    if kind in ("LineString", "LinearRing"):
        coords = _parse_coordinates(_child(element, "coordinates"))
        return {"type": "LineString", "coordinates": coords} if coords else None

    if kind == "Polygon":
        outer = _ring(_child(element, "outerBoundaryIs"))
        if not outer:
            return None
        inner = [_ring(b) for b in _children(element, "innerBoundaryIs")]
        return {"type": "Polygon", "coordinates": [outer] + [r for r in inner if r]}

    if kind == "MultiGeometry":
        parts = [
            g
            for g in (_geometry(child) for child in element if _local(child.tag) in _GEOMETRY_TAGS)
            if g is not None
        ]
        if not parts:
            return None
        if len(parts) == 1:
            return parts[0]
        return {"type": "GeometryCollection", "geometries": parts}

    return None


def _placemark_properties(placemark: ET.Element) -> Dict[str, Any]:
    properties: Dict[str, Any] = {}

    for simple in ("name", "description"):
        node = _child(placemark, simple)
        if node is not None:
            properties[simple] = _text(node)

    extended = _child(placemark, "ExtendedData")
    if extended is not None:
        for data in _children(extended, "Data"):
            if data.get("name"):
                properties[data.get("name")] = _text(_child(data, "value"))
        for schema_data in _children(extended, "SchemaData"):
            for simple_data in _children(schema_data, "SimpleData"):
                if simple_data.get("name"):
                    properties[simple_data.get("name")] = _text(simple_data)

    return properties


class KmlDecoder(FormatDecoder):
    """
    Decode KML into one record per Placemark.

    The Placemark's name, description and ExtendedData entries form the
    property bag; its geometry is converted to GeoJSON. Placemarks nested in
    Documents and Folders at any depth are included.
    """

    extensions = (".kml",)

    def decode(self, data: bytes, file_name: str) -> List[RawRecord]:
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise DecodeError(f"KML parsing error: {e}", file_name) from e

        if _local(root.tag) != "kml":
            raise DecodeError(
                f"KML parsing error: root element is <{_local(root.tag)}>, expected <kml>",
                file_name,
            )

        records: List[RawRecord] = []
        for placemark in root.iter():
            if _local(placemark.tag) != "Placemark":
                continue
            geometry = None
            try:
                for child in placemark:
                    if _local(child.tag) in _GEOMETRY_TAGS:
                        geometry = _geometry(child)
                        break
            except ValueError as e:
                raise DecodeError(f"KML parsing error: {e}", file_name) from e
            records.append(
                RawRecord(attributes=_placemark_properties(placemark), geometry=geometry)
            )

        log.info(f"Read {len(records)} placemarks from {file_name}")
        return records


# -----------------------------------------------------------------------------
# Shapefile ZIP
# -----------------------------------------------------------------------------
def _find_shapefile(directory: Path) -> Optional[Path]:
    candidates = sorted(
        path
        for path in directory.rglob("*")
        if path.suffix.lower() == ".shp"
        and "__MACOSX" not in path.parts
        and not path.name.startswith("._")
    )
    return candidates[0] if candidates else None


class ShapefileZipDecoder(FormatDecoder):
    """
    Decode a ZIP archive holding a shapefile (.shp + .dbf + .shx [+ .prj]).

    Geometries are reprojected to EPSG:4326 when the layer declares another
    CRS. An archive that yields zero features is rejected outright.
    """

    extensions = (".zip",)

    def decode(self, data: bytes, file_name: str) -> List[RawRecord]:
        with tempfile.TemporaryDirectory(prefix="agri_upload_") as tmp_dir:
            try:
                with zipfile.ZipFile(io.BytesIO(data)) as archive:
                    archive.extractall(tmp_dir)
            except zipfile.BadZipFile as e:
                raise DecodeError(f"ZIP parsing error: {e}", file_name) from e

            shp_path = _find_shapefile(Path(tmp_dir))
            if shp_path is None:
                raise DecodeError("ZIP archive does not contain a .shp file", file_name)

            try:
                gdf = gpd.read_file(shp_path)
            except Exception as e:
                raise DecodeError(f"Shapefile parsing error: {e}", file_name) from e

        if len(gdf) == 0:
            raise DecodeError("Shapefile contains no features", file_name)

        if gdf.crs is not None and gdf.crs.to_epsg() != TARGET_EPSG:
            log.info(f"Reprojecting {file_name} from {gdf.crs} to EPSG:{TARGET_EPSG}")
            gdf = gdf.to_crs(epsg=TARGET_EPSG)

        records = [
            RawRecord(attributes=feature["properties"], geometry=feature["geometry"])
            for feature in gdf.iterfeatures(na="null", drop_id=True)
        ]
        log.info(f"Read {len(records)} features from {file_name}")
        return records
