"""Tests for the HAFAS network provider."""

import hashlib
import json
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

from transit_bridge.adapters.hafas_api import HafasContext, HafasProvider
from transit_bridge.adapters.hafas_api.hafas_provider import json_location, location_match_type
from transit_bridge.domain.errors import (
    InvalidArgumentError,
    MalformedResponseError,
    ServiceDownError,
    UnsupportedOperationError,
)
from transit_bridge.domain.models import (
    Location,
    LocationType,
    NearbyLocationsStatus,
    Point,
    Product,
    ProductCodec,
    QueryDeparturesStatus,
    QueryTripsStatus,
    SuggestLocationsStatus,
    TripOptions,
)

ZONE = ZoneInfo("Europe/Berlin")
FROM = Location(type=LocationType.STATION, id="900100003", name="Alexanderplatz")
TO = Location(type=LocationType.STATION, id="900003201", name="Hauptbahnhof")
DATE = datetime(2024, 3, 1, 10, 0)


def envelope(method: str, res: Any = None, err: str = "OK", err_text: str | None = None) -> str:
    service_result: dict[str, Any] = {"meth": method, "err": err}
    if res is not None:
        service_result["res"] = res
    if err_text is not None:
        service_result["errTxt"] = err_text
    return json.dumps(
        {
            "ver": "1.44",
            "lang": "eng",
            "svcResL": [
                {
                    "meth": "ServerInfo",
                    "err": "OK",
                    "res": {"sD": "20240301", "sT": "095930"},
                },
                service_result,
            ],
        }
    )


def make_provider(
    codec: ProductCodec, *pages: str, **settings: Any
) -> tuple[HafasProvider, MagicMock]:
    http_client = MagicMock()
    http_client.post_text = AsyncMock(side_effect=list(pages))
    provider = HafasProvider(
        http_client,
        network="VBB",
        zone=ZONE,
        api_base="https://hafas.example.org/bin/",
        product_codec=codec,
        client={"id": "VBB", "type": "WEB"},
        auth={"type": "AID", "aid": "secret"},
        **settings,
    )
    return provider, http_client


def sent_request(http_client: MagicMock) -> dict[str, Any]:
    """The service request of the last POST."""
    body = json.loads(http_client.post_text.call_args.args[1])
    return body["svcReqL"][1]["req"]


class TestEnvelope:
    """Tests for request wrapping and signing."""

    def test_when_wrapping_then_envelope_is_compact_and_ordered(
        self, hafas_codec: ProductCodec
    ) -> None:
        provider, _ = make_provider(hafas_codec, ext="VBB.1")

        body = provider.wrap_request("LocMatch", {"input": {"field": "S"}})

        assert body == (
            '{"auth":{"type":"AID","aid":"secret"},"client":{"id":"VBB","type":"WEB"},'
            '"ext":"VBB.1","ver":"1.44","lang":"eng","svcReqL":['
            '{"meth":"ServerInfo","req":{"getServerDateTime":true,"getTimeTablePeriod":false}},'
            '{"meth":"LocMatch","cfg":{"polyEnc":"GPA"},"req":{"input":{"field":"S"}}}],'
            '"formatted":false}'
        )

    def test_when_checksum_salt_set_then_checksum_param_is_added(
        self, hafas_codec: ProductCodec
    ) -> None:
        provider, _ = make_provider(hafas_codec, checksum_salt=b"salt")

        params = provider.request_params("{}")

        assert params == [("checksum", hashlib.md5(b"{}salt").hexdigest())]

    def test_when_mic_mac_salt_set_then_mic_and_mac_are_added(
        self, hafas_codec: ProductCodec
    ) -> None:
        provider, _ = make_provider(hafas_codec, mic_mac_salt=b"salt")

        params = dict(provider.request_params("{}"))

        mic = hashlib.md5(b"{}").hexdigest()
        assert params["mic"] == mic
        assert params["mac"] == hashlib.md5(mic.encode() + b"salt").hexdigest()

    def test_when_no_salts_then_no_params(self, hafas_codec: ProductCodec) -> None:
        provider, _ = make_provider(hafas_codec)

        assert provider.request_params("{}") == []

    @pytest.mark.asyncio
    async def test_when_head_reports_error_then_raises_service_down(
        self, hafas_codec: ProductCodec
    ) -> None:
        provider, _ = make_provider(hafas_codec, json.dumps({"err": "AUTH", "errTxt": "bad aid"}))

        with pytest.raises(ServiceDownError, match="AUTH"):
            await provider.suggest_locations("Alex")

    @pytest.mark.asyncio
    async def test_when_body_is_not_json_then_raises_service_down(
        self, hafas_codec: ProductCodec
    ) -> None:
        provider, _ = make_provider(hafas_codec, "<html>")

        with pytest.raises(ServiceDownError, match="Unparseable"):
            await provider.suggest_locations("Alex")

    @pytest.mark.asyncio
    async def test_when_service_result_missing_then_raises_malformed(
        self, hafas_codec: ProductCodec
    ) -> None:
        page = json.dumps({"svcResL": [{"meth": "ServerInfo", "err": "OK"}]})
        provider, _ = make_provider(hafas_codec, page)

        with pytest.raises(MalformedResponseError, match="two service results"):
            await provider.suggest_locations("Alex")


class TestTrips:
    """Tests for TripSearch."""

    @pytest.mark.asyncio
    async def test_when_trips_found_then_result_has_context_and_header(
        self, hafas_codec: ProductCodec, hafas_trips_res: dict[str, Any]
    ) -> None:
        provider, http_client = make_provider(hafas_codec, envelope("TripSearch", hafas_trips_res))

        result = await provider.query_trips(FROM, None, TO, DATE, True, TripOptions())

        assert result.status == QueryTripsStatus.OK
        assert len(result.trips) == 1
        assert result.header is not None
        assert result.header.server_time == datetime(2024, 3, 1, 9, 59, 30, tzinfo=ZONE)
        assert result.context is not None
        assert result.context.can_query_later()
        assert not result.context.can_query_earlier()

        request = sent_request(http_client)
        assert request["depLocL"] == [{"type": "S", "extId": "900100003"}]
        assert request["outDate"] == "20240301"
        assert request["outTime"] == "100000"
        assert request["outFrwd"] is True
        assert "jnyFltrL" not in request
        assert "ctxScr" not in request
        assert request["gisFltrL"][0]["meta"] == "foot_speed_normal"
        assert http_client.post_text.call_args.args[0] == "https://hafas.example.org/bin/mgate.exe"

    @pytest.mark.asyncio
    async def test_when_products_and_via_given_then_they_are_sent(
        self, hafas_codec: ProductCodec, hafas_trips_res: dict[str, Any]
    ) -> None:
        provider, http_client = make_provider(hafas_codec, envelope("TripSearch", hafas_trips_res))
        via = Location.coordinate(Point(lat=52520000, lon=13400000))
        options = TripOptions(products=frozenset({Product.SUBURBAN_TRAIN, Product.BUS}))

        await provider.query_trips(FROM, via, TO, DATE, False, options)

        request = sent_request(http_client)
        assert request["viaLocL"] == [{"loc": {"type": "C", "crd": {"x": 13400000, "y": 52520000}}}]
        assert request["jnyFltrL"] == [{"value": "1001000", "mode": "BIT", "type": "PROD"}]
        assert request["outFrwd"] is False

    @pytest.mark.asyncio
    async def test_when_aware_time_given_then_it_is_sent_in_backend_zone(
        self, hafas_codec: ProductCodec, hafas_trips_res: dict[str, Any]
    ) -> None:
        provider, http_client = make_provider(hafas_codec, envelope("TripSearch", hafas_trips_res))

        await provider.query_trips(
            FROM, None, TO, datetime(2024, 3, 1, 9, 0, tzinfo=UTC), True, TripOptions()
        )

        assert sent_request(http_client)["outTime"] == "100000"

    @pytest.mark.asyncio
    async def test_when_querying_later_then_scroll_token_is_sent(
        self, hafas_codec: ProductCodec, hafas_trips_res: dict[str, Any]
    ) -> None:
        provider, http_client = make_provider(hafas_codec, envelope("TripSearch", hafas_trips_res))
        context = HafasContext(
            from_location=FROM,
            via=None,
            to_location=TO,
            date=DATE,
            departure=True,
            options=TripOptions(),
            later_context="3|OF|MT#14#501234",
        )

        result = await provider.query_more_trips(context, later=True)

        assert result.status == QueryTripsStatus.OK
        assert sent_request(http_client)["ctxScr"] == "3|OF|MT#14#501234"

    @pytest.mark.asyncio
    async def test_when_no_scroll_token_then_no_trips_without_request(
        self, hafas_codec: ProductCodec
    ) -> None:
        provider, http_client = make_provider(hafas_codec)
        context = HafasContext(FROM, None, TO, DATE, True, TripOptions())

        result = await provider.query_more_trips(context, later=False)

        assert result.status == QueryTripsStatus.NO_TRIPS
        http_client.post_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_when_context_is_foreign_then_raises(self, hafas_codec: ProductCodec) -> None:
        provider, _ = make_provider(hafas_codec)

        with pytest.raises(InvalidArgumentError, match="Not a HAFAS context"):
            await provider.query_more_trips(MagicMock(), later=True)

    @pytest.mark.parametrize(
        ("code", "text", "status"),
        [
            ("H890", None, QueryTripsStatus.NO_TRIPS),
            ("H9380", None, QueryTripsStatus.TOO_CLOSE),
            ("H9220", None, QueryTripsStatus.UNRESOLVABLE_ADDRESS),
            ("H9360", None, QueryTripsStatus.INVALID_DATE),
            (
                "LOCATION",
                "HCI Service: location missing or invalid",
                QueryTripsStatus.UNKNOWN_LOCATION,
            ),
            ("FAIL", "HCI Service: request failed", QueryTripsStatus.SERVICE_DOWN),
            ("H887", None, QueryTripsStatus.SERVICE_DOWN),
        ],
    )
    @pytest.mark.asyncio
    async def test_when_backend_reports_error_then_status_is_mapped(
        self,
        hafas_codec: ProductCodec,
        code: str,
        text: str | None,
        status: QueryTripsStatus,
    ) -> None:
        provider, _ = make_provider(hafas_codec, envelope("TripSearch", err=code, err_text=text))

        result = await provider.query_trips(FROM, None, TO, DATE, True, TripOptions())

        assert result.status == status
        assert result.trips == ()

    @pytest.mark.asyncio
    async def test_when_error_code_is_unknown_then_raises_unsupported(
        self, hafas_codec: ProductCodec
    ) -> None:
        provider, _ = make_provider(hafas_codec, envelope("TripSearch", err="H1234"))

        with pytest.raises(UnsupportedOperationError, match="H1234"):
            await provider.query_trips(FROM, None, TO, DATE, True, TripOptions())


class TestDepartures:
    @pytest.mark.asyncio
    async def test_when_version_lacks_equiv_filter_then_more_journeys_are_requested(
        self, hafas_codec: ProductCodec, hafas_departures_res: dict[str, Any]
    ) -> None:
        provider, http_client = make_provider(
            hafas_codec, envelope("StationBoard", hafas_departures_res)
        )

        result = await provider.query_departures(
            "00900100003", datetime(2024, 3, 1, 10, 5, tzinfo=UTC), max_departures=10
        )

        assert result.status == QueryDeparturesStatus.OK
        assert [station.location.id for station in result.station_departures] == ["900100003"]
        request = sent_request(http_client)
        assert request["stbLoc"] == {"type": "S", "state": "F", "extId": "900100003"}
        assert request["maxJny"] == 40
        assert request["time"] == "110500"
        assert "stbFltrEquiv" not in request

    @pytest.mark.asyncio
    async def test_when_version_has_equiv_filter_then_it_is_sent(
        self, hafas_codec: ProductCodec, hafas_departures_res: dict[str, Any]
    ) -> None:
        provider, http_client = make_provider(
            hafas_codec, envelope("StationBoard", hafas_departures_res), version="1.18"
        )

        await provider.query_departures("900100003", DATE, max_departures=10)

        request = sent_request(http_client)
        assert request["stbFltrEquiv"] is True
        assert request["maxJny"] == 10

    @pytest.mark.asyncio
    async def test_when_location_invalid_then_invalid_station(
        self, hafas_codec: ProductCodec
    ) -> None:
        page = envelope(
            "StationBoard", err="LOCATION", err_text="HCI Service: location missing or invalid"
        )
        provider, _ = make_provider(hafas_codec, page)

        result = await provider.query_departures("1")

        assert result.status == QueryDeparturesStatus.INVALID_STATION

    @pytest.mark.asyncio
    async def test_when_station_id_is_empty_then_raises(self, hafas_codec: ProductCodec) -> None:
        provider, _ = make_provider(hafas_codec)

        with pytest.raises(InvalidArgumentError):
            await provider.query_departures("")


class TestLocations:
    @pytest.mark.asyncio
    async def test_when_suggesting_then_query_is_wildcarded_and_ranked(
        self, hafas_codec: ProductCodec, hafas_common: dict[str, Any]
    ) -> None:
        res = {"common": hafas_common, "match": {"locL": hafas_common["locL"][:3]}}
        provider, http_client = make_provider(hafas_codec, envelope("LocMatch", res))

        result = await provider.suggest_locations("Alex", {LocationType.STATION}, 5)

        assert result.status == SuggestLocationsStatus.OK
        assert [location.id for location in result.get_locations()][:2] == [
            "900100003",
            "900003201",
        ]
        assert sent_request(http_client)["input"] == {
            "field": "S",
            "loc": {"name": "Alex?", "type": "S"},
            "maxLoc": 5,
        }

    @pytest.mark.asyncio
    async def test_when_suggest_service_fails_then_service_down(
        self, hafas_codec: ProductCodec
    ) -> None:
        provider, _ = make_provider(hafas_codec, envelope("LocMatch", err="H9240"))

        result = await provider.suggest_locations("Alex")

        assert result.status == SuggestLocationsStatus.SERVICE_DOWN

    @pytest.mark.asyncio
    async def test_when_nearby_then_only_requested_types_are_returned(
        self, hafas_codec: ProductCodec, hafas_common: dict[str, Any]
    ) -> None:
        res = {"common": hafas_common, "locL": hafas_common["locL"][:3]}
        provider, http_client = make_provider(hafas_codec, envelope("LocGeoPos", res))

        result = await provider.query_nearby_locations(
            {LocationType.STATION}, Location.coordinate(Point(lat=52521512, lon=13411267))
        )

        assert result.status == NearbyLocationsStatus.OK
        assert {location.type for location in result.locations} == {LocationType.STATION}
        request = sent_request(http_client)
        assert request["ring"] == {"cCrd": {"x": 13411267, "y": 52521512}, "maxDist": 20000}
        assert request["getStops"] is True
        assert request["getPOIs"] is False

    @pytest.mark.asyncio
    async def test_when_nearby_without_coordinate_then_raises(
        self, hafas_codec: ProductCodec
    ) -> None:
        provider, _ = make_provider(hafas_codec)

        with pytest.raises(InvalidArgumentError, match="coordinate"):
            await provider.query_nearby_locations({LocationType.STATION}, FROM)


class TestRequestForms:
    def test_json_location_for_address_uses_lid(self) -> None:
        location = Location(type=LocationType.ADDRESS, id="A=2@O=Street 1@", name="Street 1")

        assert json_location(location) == {"type": "A", "lid": "A=2@O=Street 1@"}

    def test_json_location_for_named_address_without_id_builds_lid(self) -> None:
        """Given an address with name and coordinate only, when sending, then a lid is built."""
        location = Location(
            type=LocationType.ADDRESS,
            coord=Point(lat=48137350, lon=11575440),
            name="Marienplatz 1",
        )

        assert json_location(location) == {
            "type": "A",
            "lid": "A=2@O=Marienplatz 1@X=11575440@Y=48137350@",
        }

    def test_json_location_for_unnamed_address_falls_back_to_coordinate(self) -> None:
        location = Location(type=LocationType.ADDRESS, coord=Point(lat=48137350, lon=11575440))

        assert json_location(location) == {"type": "C", "crd": {"x": 11575440, "y": 48137350}}

    def test_json_location_without_id_or_coordinate_raises(self) -> None:
        with pytest.raises(InvalidArgumentError):
            json_location(Location(type=LocationType.ANY, name="Somewhere"))

    @pytest.mark.parametrize(
        ("types", "expected"),
        [
            (None, "ALL"),
            ({LocationType.ANY}, "ALL"),
            ({LocationType.STATION, LocationType.POI}, "SP"),
            ({LocationType.ADDRESS}, "A"),
        ],
    )
    def test_location_match_type(self, types: set[LocationType] | None, expected: str) -> None:
        assert location_match_type(types) == expected
