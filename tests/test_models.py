#!/usr/bin/env python3
"""
Test suite for cinefest/models.py — payload parsing and display helpers
"""

import dataclasses
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from cinefest.models import Coordinate, Festival, Film, MembershipKind


FESTIVAL_PAYLOAD = {
    '_id': 'abc123',
    'nom_du_festival': 'Festival Lumière',
    'numero_de_voie': '25',
    'type_de_voie_rue_avenue_boulevard_etc': 'rue',
    'nom_de_la_voie': 'du Premier-Film',
    'code_postal_de_la_commune_principale_de_deroulement': '69008',
    'commune_principale_de_deroulement': 'Lyon',
    'departement_principal_de_deroulement': 'Rhône',
    'libelle_epci_collage_en_valeur': 'Métropole de Lyon',
    'periode_principale_de_deroulement_du_festival': 'Saison 4 (1er septembre - 31 décembre)',
    'discipline_dominante': 'Cinéma, audiovisuel',
    'site_internet_du_festival': 'https://www.festival-lumiere.org',
    'adresse_e_mail': 'contact@institut-lumiere.org',
    'geocodage_xy': {'lat': 45.745, 'lon': 4.870},
}


class TestCoordinate:

    def test_lat_lon_keys(self):
        assert Coordinate.from_payload({'lat': '45.5', 'lon': 4}) == Coordinate(45.5, 4.0)

    def test_latitude_longitude_keys(self):
        assert Coordinate.from_payload({'latitude': 1, 'longitude': 2}) == Coordinate(1.0, 2.0)

    @pytest.mark.parametrize("payload", [
        None,
        {},
        {'lat': 'north', 'lon': 2},
        {'lat': 91, 'lon': 0},
        {'lat': 0, 'lon': -181},
        [45.0, 4.0],
    ])
    def test_invalid(self, payload):
        assert Coordinate.from_payload(payload) is None


class TestFilm:

    def test_from_payload(self):
        film = Film.from_payload({
            '_id': '65f0',
            'originalTitle': 'La Haine',
            'director': 'Mathieu Kassovitz',
            'years': '1995',
            'time': '1h38',
            'gender': 'Drame',
            'synopsis': 'Vingt-quatre heures dans la vie de trois jeunes.',
        })
        assert film.id == '65f0'
        assert film.title == 'La Haine'
        assert film.year == 1995
        assert film.duration == '1h38'
        assert film.genre == 'Drame'
        assert film.image_ref is None
        assert film.coordinate is None

    def test_missing_title_rejected(self):
        with pytest.raises(ValueError):
            Film.from_payload({'_id': '1'})

    def test_unparseable_year(self):
        film = Film.from_payload({'_id': '1', 'originalTitle': 'X', 'years': 'unknown'})
        assert film.year is None

    def test_frozen(self):
        film = Film(id='1', title='X')
        with pytest.raises(dataclasses.FrozenInstanceError):
            film.title = 'Y'

    def test_poster_url(self):
        assert Film(id='1', title='X').poster_url() is None
        film = Film(id='1', title='X', image_ref='/abc.jpg')
        assert film.poster_url() == 'https://image.tmdb.org/t/p/w500/abc.jpg'
        assert film.poster_url('w185') == 'https://image.tmdb.org/t/p/w185/abc.jpg'


class TestFestival:

    def test_from_payload(self):
        festival = Festival.from_payload(FESTIVAL_PAYLOAD)
        assert festival.id == 'abc123'
        assert festival.title == 'Festival Lumière'
        assert festival.coordinate == Coordinate(45.745, 4.870)
        assert festival.city == 'Lyon'
        assert festival.email == 'contact@institut-lumiere.org'

    def test_id_falls_back_to_name(self):
        payload = dict(FESTIVAL_PAYLOAD)
        del payload['_id']
        assert Festival.from_payload(payload).id == 'Festival Lumière'

    def test_missing_coordinate(self):
        payload = dict(FESTIVAL_PAYLOAD, geocodage_xy=None)
        assert Festival.from_payload(payload).coordinate is None

    def test_full_address(self):
        festival = Festival.from_payload(FESTIVAL_PAYLOAD)
        assert festival.full_address() == '25 rue du Premier-Film 69008 Lyon'

    def test_full_address_skips_blanks(self):
        festival = Festival(id='1', title='F', street_name='Grand Place', city='Arras')
        assert festival.full_address() == 'Grand Place Arras'

    @pytest.mark.parametrize("discipline,category", [
        ('Cinéma, audiovisuel', 'cinema'),
        ('Musiques actuelles', 'music'),
        ('Livre, littérature', 'books'),
        ('Spectacle vivant', 'performing_arts'),
        ('Arts visuels', 'other'),
        (None, 'other'),
    ])
    def test_discipline_category(self, discipline, category):
        assert Festival(id='1', title='F', discipline=discipline).discipline_category() == category


class TestMembershipKind:

    @pytest.mark.parametrize("text,kind", [
        ('favorites', MembershipKind.FAVORITES),
        ('watched', MembershipKind.WATCHED),
        ('to-watch', MembershipKind.TO_WATCH),
        ('toWatch', MembershipKind.TO_WATCH),
        ('TO_WATCH', MembershipKind.TO_WATCH),
    ])
    def test_parse(self, text, kind):
        assert MembershipKind.parse(text) is kind

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            MembershipKind.parse('blocked')

    def test_endpoints(self):
        assert MembershipKind.TO_WATCH.endpoints['add'] == '/aVoir/voirAdd'
        assert MembershipKind.WATCHED.endpoints['list_key'] == 'vus'
