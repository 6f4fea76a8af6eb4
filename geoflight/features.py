"""
Feature collection exchange for scene objects.

Scene objects (markers, GCPs, survey areas, buildings) are exchanged as a
GeoJSON-style FeatureCollection with geodetic [longitude, latitude, altitude]
coordinates. Each feature's properties carry:
    objectType, modelKey, name, rotation (degrees), scale

Only Point and Polygon geometries are understood; anything else is skipped
with a warning. Polygons use their exterior ring only.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple
import logging

from .reference_frame import ReferenceFrame
from .transforms import GeodeticCoordinate, LocalCoordinate

logger = logging.getLogger(__name__)

SUPPORTED_GEOMETRIES = ("Point", "Polygon")


@dataclass(frozen=True)
class SceneObject:
    """
    An object placed in the local scene.

    Attributes:
        object_type: Category, e.g. 'gcp', 'building', 'area'
        model_key: Key of the 3D model used to display it
        positions: One position for points, the ring corners for polygons
        geometry_type: 'Point' or 'Polygon'
        name: Display name
        rotation: Heading of the model in degrees
        scale: Uniform model scale
        properties: Any further properties, passed through unchanged
    """
    object_type: str
    model_key: str
    positions: Tuple[LocalCoordinate, ...]
    geometry_type: str = "Point"
    name: str = ""
    rotation: float = 0.0
    scale: float = 1.0
    properties: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if self.geometry_type not in SUPPORTED_GEOMETRIES:
            raise ValueError(f"Unsupported geometry type: {self.geometry_type}")
        if self.geometry_type == "Point" and len(self.positions) != 1:
            raise ValueError(f"Point objects need exactly one position, got {len(self.positions)}")
        if self.geometry_type == "Polygon" and len(self.positions) < 3:
            raise ValueError(f"Polygon objects need at least 3 positions, got {len(self.positions)}")

    @property
    def position(self) -> LocalCoordinate:
        return self.positions[0]


def _to_local(coords: Sequence[float], frame: ReferenceFrame) -> LocalCoordinate:
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        raise ValueError(f"expected [longitude, latitude(, altitude)], got {coords!r}")
    lon, lat = coords[0], coords[1]
    alt = coords[2] if len(coords) > 2 and coords[2] is not None else 0.0
    try:
        geodetic = GeodeticCoordinate(float(lat), float(lon), float(alt))
    except (TypeError, ValueError):
        raise ValueError(f"non-numeric position {coords!r}") from None
    return frame.to_local(geodetic)


def _positions(geometry: Dict[str, Any], frame: ReferenceFrame) -> Tuple[LocalCoordinate, ...]:
    coordinates = geometry.get('coordinates')
    if coordinates is None:
        raise ValueError(f"{geometry['type']} has no coordinates")

    if geometry['type'] == 'Point':
        return (_to_local(coordinates, frame),)

    if not isinstance(coordinates, (list, tuple)) or not coordinates \
            or not isinstance(coordinates[0], (list, tuple)):
        raise ValueError("Polygon needs an exterior ring")
    ring = list(coordinates[0])
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring = ring[:-1]
    if len(ring) < 3:
        raise ValueError(f"Polygon ring needs at least 3 distinct positions, got {len(ring)}")
    return tuple(_to_local(coords, frame) for coords in ring)


def _to_lonlat(local: LocalCoordinate, frame: ReferenceFrame) -> List[float]:
    geo = frame.to_geodetic(local)
    return [geo.longitude, geo.latitude, geo.altitude]


def import_features(collection: Dict[str, Any], frame: ReferenceFrame) -> List[SceneObject]:
    """
    Convert a FeatureCollection into scene objects in the given frame.

    Args:
        collection: GeoJSON-style dict with type 'FeatureCollection'
        frame: Frame to express the positions in

    Returns:
        SceneObjects in feature order
    """
    if not isinstance(collection, dict) or collection.get('type') != 'FeatureCollection' \
            or 'features' not in collection:
        raise ValueError("Invalid feature collection: expected type 'FeatureCollection' with 'features'")

    objects = []
    for index, feature in enumerate(collection['features']):
        if not isinstance(feature, dict):
            raise ValueError(f"Feature {index}: expected an object, got {type(feature).__name__}")
        geometry = feature.get('geometry') or {}
        geometry_type = geometry.get('type')
        if geometry_type not in SUPPORTED_GEOMETRIES:
            logger.warning(f"Skipping feature {index}: unsupported geometry {geometry_type}")
            continue

        try:
            positions = _positions(geometry, frame)
        except ValueError as e:
            raise ValueError(f"Feature {index}: {e}") from None

        properties = dict(feature.get('properties') or {})
        objects.append(SceneObject(
            object_type=properties.pop('objectType', ''),
            model_key=properties.pop('modelKey', ''),
            positions=positions,
            geometry_type=geometry_type,
            name=properties.pop('name', ''),
            rotation=float(properties.pop('rotation', 0.0)),
            scale=float(properties.pop('scale', 1.0)),
            properties=properties,
        ))

    logger.info(f"Imported {len(objects)} of {len(collection['features'])} features")
    return objects


def export_features(objects: Sequence[SceneObject], frame: ReferenceFrame) -> Dict[str, Any]:
    """
    Convert scene objects into a FeatureCollection.

    Args:
        objects: Scene objects whose positions belong to frame
        frame: Frame the positions were produced in

    Returns:
        GeoJSON-style dict with [longitude, latitude, altitude] coordinates
    """
    features = []
    for obj in objects:
        if obj.geometry_type == 'Point':
            geometry = {'type': 'Point', 'coordinates': _to_lonlat(obj.position, frame)}
        else:
            ring = [_to_lonlat(p, frame) for p in obj.positions]
            ring.append(list(ring[0]))
            geometry = {'type': 'Polygon', 'coordinates': [ring]}

        features.append({
            'type': 'Feature',
            'geometry': geometry,
            'properties': {
                **obj.properties,
                'objectType': obj.object_type,
                'modelKey': obj.model_key,
                'name': obj.name,
                'rotation': obj.rotation,
                'scale': obj.scale,
            },
        })

    logger.info(f"Exported {len(features)} features")
    return {'type': 'FeatureCollection', 'features': features}
