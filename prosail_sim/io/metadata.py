"""
Acquisition angles from product metadata.

Reads the mean sun and viewing angles of a Sentinel-2 style tile
metadata file (MTD_TL.xml and the MAJA/L2A variants with the same
element names):

    <Tile_Angles>
      <Mean_Sun_Angle>
        <ZENITH_ANGLE unit="deg">35.2</ZENITH_ANGLE>
        <AZIMUTH_ANGLE unit="deg">160.1</AZIMUTH_ANGLE>
      </Mean_Sun_Angle>
      <Mean_Viewing_Incidence_Angle_List>
        <Mean_Viewing_Incidence_Angle bandId="0">
          <ZENITH_ANGLE unit="deg">5.1</ZENITH_ANGLE>
          <AZIMUTH_ANGLE unit="deg">102.3</AZIMUTH_ANGLE>
        </Mean_Viewing_Incidence_Angle>
        ...

Viewing angles given per band are "band" angles; a viewing angle element
without bandId is a "global" angle. XML namespaces are ignored.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class MeanAngles:
    """Zenith/azimuth pair in degrees."""
    zenith: float
    azimuth: float


def _local(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def _find_all(root: ET.Element, name: str) -> List[ET.Element]:
    return [el for el in root.iter() if _local(el.tag) == name]


def _child_float(element: ET.Element, name: str) -> Optional[float]:
    for child in element:
        if _local(child.tag) == name and child.text:
            try:
                return float(child.text)
            except ValueError:
                return None
    return None


def _read_angles(element: ET.Element) -> Optional[MeanAngles]:
    zenith = _child_float(element, 'ZENITH_ANGLE')
    azimuth = _child_float(element, 'AZIMUTH_ANGLE')
    if zenith is None or azimuth is None:
        return None
    return MeanAngles(zenith, azimuth)


def relative_azimuth(solar_azimuth: float, sensor_azimuth: float) -> float:
    """Solar minus sensor azimuth, wrapped to [-180, 180]."""
    rel = solar_azimuth - sensor_azimuth
    if rel < -180.0:
        rel += 360.0
    elif rel > 180.0:
        rel -= 360.0
    return rel


class MetadataHelper:
    """Angle accessors for one product metadata file."""

    def __init__(self, filepath: Union[str, Path]):
        """
        Args:
            filepath: Metadata XML file

        Raises:
            OSError: If the file cannot be read
            ConfigurationError: If it is not well-formed XML
        """
        self.filepath = Path(filepath)
        try:
            self.root = ET.parse(self.filepath).getroot()
        except ET.ParseError as e:
            raise ConfigurationError(f"Could not parse metadata {self.filepath}: {e}") from e

        self._solar = None
        for el in _find_all(self.root, 'Mean_Sun_Angle'):
            self._solar = _read_angles(el)
            if self._solar is not None:
                break

        self._band_angles = {}
        self._global_angles = None
        for el in _find_all(self.root, 'Mean_Viewing_Incidence_Angle'):
            angles = _read_angles(el)
            if angles is None:
                continue
            band_id = el.get('bandId')
            if band_id is None:
                self._global_angles = angles
            else:
                try:
                    self._band_angles[int(band_id)] = angles
                except ValueError:
                    logger.debug(f"Ignoring viewing angles for band '{band_id}'")

    @property
    def mission_name(self) -> str:
        for name in ('SPACECRAFT_NAME', 'MISSION', 'PLATFORM'):
            found = _find_all(self.root, name)
            if found and found[0].text:
                return found[0].text.strip()
        return _local(self.root.tag)

    def has_band_mean_angles(self) -> bool:
        return len(self._band_angles) > 0

    def has_global_mean_angles(self) -> bool:
        return self._global_angles is not None

    def get_solar_mean_angles(self) -> Optional[MeanAngles]:
        return self._solar

    def get_sensor_mean_angles(self, band: Optional[int] = None) -> Optional[MeanAngles]:
        """
        Mean viewing angles.

        Args:
            band: Band index; None for the global angles. A band index with
                no band-level entry gives the lowest band id available.
        """
        if band is None:
            return self._global_angles
        if band in self._band_angles:
            return self._band_angles[band]
        if self._band_angles:
            return self._band_angles[min(self._band_angles)]
        return None

    def get_relative_azimuth_angle(self) -> Optional[float]:
        if self._solar is None:
            return None
        sensor = self.get_sensor_mean_angles(0) or self._global_angles
        if sensor is None:
            return None
        return relative_azimuth(self._solar.azimuth, sensor.azimuth)
