"""Tests for the grid candidate backend."""

from __future__ import annotations

from efb.contracts.common import Coordinate
from efb.services.airports.spatial import GridBackend, LinearScanBackend
from tests.fakes import make_airport


class TestGridBackend:
    def test_candidates_limited_to_nearby_cells(self):
        near = make_airport("NEAR", 37.4, -122.1)
        far = make_airport("FARR", 40.6, -73.8)
        backend = GridBackend([near, far])

        candidates = list(backend.candidates(Coordinate(latitude=37.5, longitude=-122.2), 20.0))
        assert candidates == [near]

    def test_cells(self):
        backend = GridBackend([
            make_airport("AAAA", 37.1, -122.1),
            make_airport("BBBB", 37.9, -122.9),
            make_airport("CCCC", 38.1, -122.1),
        ])
        # AAAA and BBBB share the 37N 123W cell
        assert backend.cell_count == 2
        assert len(backend) == 3

    def test_polar_query_returns_everything(self):
        airports = [make_airport("POLE", 89.5, 10.0), make_airport("EQUA", 0.0, 0.0)]
        backend = GridBackend(airports)
        assert len(list(backend.candidates(Coordinate(latitude=88.9, longitude=0.0), 10.0))) == 2

    def test_wraps_longitude(self):
        east = make_airport("EAST", 10.0, -179.5)
        backend = GridBackend([east])
        assert list(backend.candidates(Coordinate(latitude=10.0, longitude=179.7), 60.0)) == [east]


class TestLinearScanBackend:
    def test_every_airport_is_a_candidate(self):
        airports = [make_airport("AAAA", 0.0, 0.0), make_airport("BBBB", 50.0, 50.0)]
        backend = LinearScanBackend(airports)
        assert list(backend.candidates(Coordinate(latitude=0.0, longitude=0.0), 1.0)) == airports
