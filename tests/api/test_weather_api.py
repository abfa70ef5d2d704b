"""Tests for the weather endpoints."""

from __future__ import annotations

from tests.fakes import make_observation


class TestRefresh:
    async def test_first_refresh_fetches(self, client, services):
        services.weather_fetcher.serve(make_observation("KPAO"))

        resp = await client.post("/api/weather/kpao/refresh")

        assert resp.status_code == 200
        body = resp.json()
        assert body["observation"]["station_id"] == "KPAO"
        assert body["tier"] == "fresh"
        assert body["refreshed"] is True
        assert body["degraded"] is False
        assert body["age"] == "<1 min"

    async def test_fresh_entry_not_refetched(self, client, services):
        services.weather_fetcher.serve(make_observation("KPAO"))
        await client.post("/api/weather/KPAO/refresh")
        services.clock.advance(minutes=20)

        body = (await client.post("/api/weather/KPAO/refresh")).json()

        assert body["refreshed"] is False
        assert body["age_minutes"] == 20
        assert services.weather_fetcher.calls == ["KPAO"]

    async def test_failed_fetch_serves_old_copy(self, client, services):
        services.weather_fetcher.serve(make_observation("KPAO"))
        services.weather_fetcher.fail("KPAO")
        await client.post("/api/weather/KPAO/refresh")
        services.clock.advance(minutes=90)

        body = (await client.post("/api/weather/KPAO/refresh")).json()

        assert body["tier"] == "old"
        assert body["age"] == "1h 30m"
        assert body["degraded"] is True
        assert body["error"]["code"] == "network_unavailable"

    async def test_failed_fetch_with_nothing_cached(self, client):
        resp = await client.post("/api/weather/KSQL/refresh")
        assert resp.status_code == 502
        assert resp.json()["detail"]["code"] == "network_unavailable"

    async def test_invalid_station(self, client):
        resp = await client.post("/api/weather/TOOLONG/refresh")
        assert resp.status_code == 422
        assert resp.json()["detail"]["code"] == "invalid_input"


class TestCachedReads:
    async def test_get_never_fetches(self, client, services):
        resp = await client.get("/api/weather/KPAO")
        assert resp.status_code == 404
        detail = resp.json()["detail"]
        assert detail["code"] == "not_found"
        assert detail["details"] == {"kind": "weather", "key": "KPAO"}
        assert services.weather_fetcher.calls == []

    async def test_list_and_clear(self, client, services):
        services.weather_fetcher.serve(make_observation("KPAO"), make_observation("KSQL"))
        await client.post("/api/weather/KPAO/refresh")
        await client.post("/api/weather/KSQL/refresh")

        listed = (await client.get("/api/weather")).json()
        assert [e["observation"]["station_id"] for e in listed] == ["KPAO", "KSQL"]

        resp = await client.delete("/api/weather")
        assert resp.status_code == 204
        assert (await client.get("/api/weather")).json() == []
        assert services.store.weather == {}


class TestTaf:
    async def test_taf_attached(self, client, services):
        services.weather_fetcher.serve(make_observation("KPAO"))
        services.weather_fetcher.tafs["KPAO"] = "TAF KPAO 151130Z 1512/1612 27010KT P6SM SKC"
        await client.post("/api/weather/KPAO/refresh")

        resp = await client.post("/api/weather/KPAO/taf")

        assert resp.status_code == 200
        assert resp.json()["raw_taf"].startswith("TAF KPAO")
        cached = (await client.get("/api/weather/KPAO")).json()
        assert cached["observation"]["raw_taf"].startswith("TAF KPAO")

    async def test_no_taf(self, client):
        resp = await client.post("/api/weather/KSQL/taf")
        assert resp.status_code == 404
