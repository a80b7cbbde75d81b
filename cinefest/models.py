#!/usr/bin/env python3
"""
Catalog records: films, festivals and the coordinates festivals sit on

Records are frozen. Enrichment produces a new record through
dataclasses.replace() and only ever touches image_ref, so a record's
core fields are exactly what the catalog source returned.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any

from cinefest.constants import (
    TMDB_IMAGE_BASE_URL, DEFAULT_POSTER_SIZE, MEMBERSHIP_ENDPOINTS,
)

logger = logging.getLogger(__name__)


class MembershipKind(Enum):
    """The three independent per-user lists"""
    FAVORITES = 'favorites'
    WATCHED = 'watched'
    TO_WATCH = 'toWatch'

    @property
    def endpoints(self) -> Dict[str, str]:
        return MEMBERSHIP_ENDPOINTS[self.value]

    @classmethod
    def parse(cls, value: str) -> 'MembershipKind':
        """Accept 'favorites', 'to-watch', 'toWatch', 'TO_WATCH'..."""
        key = str(value).strip().replace('-', '').replace('_', '').lower()
        for kind in cls:
            if kind.value.lower() == key or kind.name.replace('_', '').lower() == key:
                return kind
        raise ValueError(f"Unknown membership kind: {value!r}")


@dataclass(frozen=True)
class Coordinate:
    """Latitude/longitude pair in decimal degrees"""
    lat: float
    lon: float

    @classmethod
    def from_payload(cls, payload: Any) -> Optional['Coordinate']:
        """
        Build a Coordinate from a {'lat','lon'} or {'latitude','longitude'} mapping

        Returns None when the payload is missing, non-numeric or out of range.
        """
        if not isinstance(payload, dict):
            return None
        lat = payload.get('lat', payload.get('latitude'))
        lon = payload.get('lon', payload.get('longitude'))
        try:
            lat = float(lat)
            lon = float(lon)
        except (TypeError, ValueError):
            return None
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            return None
        return cls(lat=lat, lon=lon)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _year(value: Any) -> Optional[int]:
    # Backend sends years as int or string, occasionally "1999-2000"
    text = _text(value)
    if not text:
        return None
    try:
        return int(text[:4])
    except ValueError:
        return None


@dataclass(frozen=True)
class CatalogItem:
    """Fields shared by every catalog record"""
    id: str
    title: str
    image_ref: Optional[str] = None
    coordinate: Optional[Coordinate] = None

    def poster_url(self, size: str = DEFAULT_POSTER_SIZE) -> Optional[str]:
        """Display URL for image_ref, or None while the record is unenriched"""
        if not self.image_ref:
            return None
        return f"{TMDB_IMAGE_BASE_URL}/{size}/{self.image_ref.lstrip('/')}"


@dataclass(frozen=True)
class Film(CatalogItem):
    """Film record from the backend catalog"""
    director: Optional[str] = None
    year: Optional[int] = None
    duration: Optional[str] = None
    genre: Optional[str] = None
    synopsis: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> 'Film':
        """Parse one backend film document. Raises ValueError without id or title."""
        item_id = _text(data.get('_id', data.get('id')))
        title = _text(data.get('originalTitle', data.get('title')))
        if not item_id or not title:
            raise ValueError(f"Film record missing id or title: {data!r}")

        return cls(
            id=item_id,
            title=title,
            director=_text(data.get('director')),
            year=_year(data.get('years')),
            duration=_text(data.get('time')),
            # 'gender' is the backend's name for the genre field
            genre=_text(data.get('gender')),
            synopsis=_text(data.get('synopsis')),
        )


@dataclass(frozen=True)
class Festival(CatalogItem):
    """Geolocated cultural festival from the open-data festival catalog"""
    street_number: Optional[str] = None
    street_type: Optional[str] = None
    street_name: Optional[str] = None
    address_complement: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    department: Optional[str] = None
    area: Optional[str] = None
    period: Optional[str] = None
    discipline: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> 'Festival':
        """
        Parse one festival document (open-data field names).

        Festivals without an '_id' are identified by their name.
        Raises ValueError when the name is missing.
        """
        title = _text(data.get('nom_du_festival', data.get('title')))
        if not title:
            raise ValueError(f"Festival record missing name: {data!r}")

        coordinate = Coordinate.from_payload(data.get('geocodage_xy'))
        if coordinate is None:
            logger.debug(f"Festival '{title}' has no usable coordinate")

        return cls(
            id=_text(data.get('_id', data.get('id'))) or title,
            title=title,
            coordinate=coordinate,
            street_number=_text(data.get('numero_de_voie')),
            street_type=_text(data.get('type_de_voie_rue_avenue_boulevard_etc')),
            street_name=_text(data.get('nom_de_la_voie')),
            address_complement=_text(data.get('complement_d_adresse_facultatif')),
            postal_code=_text(data.get('code_postal_de_la_commune_principale_de_deroulement')),
            city=_text(data.get('commune_principale_de_deroulement')),
            department=_text(data.get('departement_principal_de_deroulement')),
            area=_text(data.get('libelle_epci_collage_en_valeur')),
            period=_text(data.get('periode_principale_de_deroulement_du_festival')),
            discipline=_text(data.get('discipline_dominante')),
            website=_text(data.get('site_internet_du_festival')),
            email=_text(data.get('adresse_e_mail')),
        )

    def full_address(self) -> str:
        """Space-joined address: number, street type, street name, complement, postal code, city"""
        parts = [
            self.street_number,
            self.street_type,
            self.street_name,
            self.address_complement,
            self.postal_code,
            self.city,
        ]
        return ' '.join(part for part in parts if part)

    def discipline_category(self) -> str:
        """Coarse bucket used for icons: cinema, music, books, performing arts or other"""
        discipline = self.discipline or ''
        if 'Cinéma' in discipline:
            return 'cinema'
        if 'Musique' in discipline:
            return 'music'
        if 'Livre' in discipline:
            return 'books'
        if 'Spectacle' in discipline:
            return 'performing_arts'
        return 'other'
