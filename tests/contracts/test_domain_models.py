"""Tests for Airport, WeatherObservation, ChartRegion and RoutePlan contracts."""

from datetime import datetime, timedelta, timezone

import pytest

from efb.contracts.airport import Airport, NearbyAirport
from efb.contracts.chart import ChartRegion
from efb.contracts.enums import FlightCategory, StalenessTier
from efb.contracts.result import ServiceError
from efb.contracts.route import RouteLeg, RoutePlan
from efb.contracts.weather import WeatherObservation, WeatherRefreshResult, WindInfo
from tests.fakes import T0, kpao, ksql, make_observation, make_region


class TestAirport:
    def test_icao_normalized(self):
        a = Airport(
            icao=" kpao ",
            name="Palo Alto",
            coordinate={"latitude": 37.46, "longitude": -122.11},
            elevation_ft=4,
        )
        assert a.icao == "KPAO"

    def test_bad_icao(self):
        with pytest.raises(Exception):
            Airport(icao="K-PAO", name="x", coordinate={"latitude": 0, "longitude": 0}, elevation_ft=0)

    def test_ctaf_range(self):
        with pytest.raises(Exception):
            Airport(
                icao="KPAO",
                name="Palo Alto",
                coordinate={"latitude": 37.46, "longitude": -122.11},
                elevation_ft=4,
                ctaf_mhz=18.2,
            )

    def test_to_dict_omits_none(self):
        data = kpao().to_dict()
        assert "faa_id" not in data
        assert data["coordinate"] == {"latitude": 37.4611, "longitude": -122.115}

    def test_nearby_bearing_range(self):
        with pytest.raises(Exception):
            NearbyAirport(airport=kpao(), distance_nm=1.0, bearing_deg=360.0)


class TestWeatherObservation:
    def test_station_normalized(self):
        assert make_observation("kpao").station_id == "KPAO"

    def test_category_stored_as_value(self):
        obs = make_observation("KPAO", category=FlightCategory.IFR)
        assert obs.flight_category == FlightCategory.IFR
        assert obs.to_dict()["flight_category"] == "IFR"

    def test_naive_fetch_time_is_utc(self):
        obs = make_observation("KPAO", fetched_at=datetime(2025, 6, 15, 12))
        assert obs.fetched_at == T0

    def test_round_trip_through_dict(self):
        obs = make_observation("KSQL").model_copy(
            update={"wind": WindInfo(direction_deg=270, speed_kts=8, gust_kts=15)}
        )
        assert WeatherObservation.from_dict(obs.to_dict()) == obs

    def test_refresh_result_degraded(self):
        obs = make_observation("KPAO")
        ok = WeatherRefreshResult(observation=obs, tier=StalenessTier.FRESH, refreshed=True)
        served = WeatherRefreshResult(
            observation=obs,
            tier=StalenessTier.OLD,
            refreshed=False,
            error=ServiceError(code="timeout", message="slow"),
        )
        assert not ok.degraded
        assert served.degraded


class TestChartRegion:
    def test_expiry_independent_of_download(self):
        region = make_region()
        assert not region.is_downloaded
        assert not region.is_expired(T0)
        assert region.is_expired(region.expiration_date + timedelta(seconds=1))
        # The expiration instant itself is still current
        assert not region.is_expired(region.expiration_date)

    def test_window_order(self):
        with pytest.raises(Exception, match="precedes"):
            make_region(effective=T0, expiration=T0 - timedelta(days=1))

    def test_naive_dates_are_utc(self):
        region = ChartRegion(
            id="Denver",
            name="Denver",
            effective_date=datetime(2025, 6, 1),
            expiration_date=datetime(2025, 7, 27),
            file_size_bytes=1,
        )
        assert region.expiration_date == datetime(2025, 7, 27, tzinfo=timezone.utc)

    def test_negative_size(self):
        with pytest.raises(Exception):
            make_region(size=-1)


def _leg(a, b, dist=7.0):
    return RouteLeg(
        from_icao=a, to_icao=b, distance_nm=dist, bearing_deg=300.0,
        ete=timedelta(minutes=3.5), fuel_gal=0.5,
    )


class TestRoutePlan:
    def _plan(self, legs):
        return RoutePlan(
            waypoints=[kpao(), ksql()],
            legs=legs,
            cruise_speed_kts=120,
            burn_rate_gph=8.5,
            total_distance_nm=7.0,
            estimated_time=timedelta(minutes=3.5),
            estimated_fuel_gal=0.5,
        )

    def test_valid(self):
        plan = self._plan([_leg("KPAO", "KSQL")])
        assert plan.departure.icao == "KPAO"
        assert plan.destination.icao == "KSQL"
        assert plan.estimated_time_minutes == pytest.approx(3.5)

    def test_leg_count_mismatch(self):
        with pytest.raises(Exception, match="Expected 1 legs"):
            self._plan([])

    def test_leg_must_join_waypoints(self):
        with pytest.raises(Exception, match="does not join"):
            self._plan([_leg("KSQL", "KPAO")])

    def test_single_waypoint_rejected(self):
        with pytest.raises(Exception):
            RoutePlan(
                waypoints=[kpao()], legs=[], cruise_speed_kts=120, burn_rate_gph=0,
                total_distance_nm=0, estimated_time=timedelta(0), estimated_fuel_gal=0,
            )

    def test_bad_leg_bearing(self):
        with pytest.raises(Exception):
            RouteLeg(from_icao="A", to_icao="B", distance_nm=1, bearing_deg=360,
                     ete=timedelta(0), fuel_gal=0)
