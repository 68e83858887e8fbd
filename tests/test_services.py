"""Tests for application services."""

from dataclasses import dataclass
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from transit_bridge.application.services import LocationDisambiguator, TransitQueryService
from transit_bridge.domain.errors import (
    InvalidArgumentError,
    ServiceDownError,
    UnsupportedOperationError,
)
from transit_bridge.domain.models import (
    Location,
    LocationType,
    NearbyLocationsStatus,
    PaginationContext,
    Point,
    QueryDeparturesResult,
    QueryDeparturesStatus,
    QueryTripsResult,
    QueryTripsStatus,
    ResolutionStatus,
    ResultHeader,
    SuggestedLocation,
    SuggestLocationsResult,
    SuggestLocationsStatus,
    TripOptions,
)
from transit_bridge.domain.ports import Capability

HEADER = ResultHeader(network="TEST", server_product="mock")
DATE = datetime(2024, 3, 1, 10, 0)
ALEX = Location(type=LocationType.STATION, id="1", name="Alexanderplatz")
ALEX_BUS = Location(type=LocationType.STATION, id="2", name="Alexanderplatz (Bus)")
HBF = Location(type=LocationType.STATION, id="3", name="Hauptbahnhof")


@dataclass(frozen=True)
class FakeContext(PaginationContext):
    later: bool = False
    earlier: bool = False

    def can_query_later(self) -> bool:
        return self.later

    def can_query_earlier(self) -> bool:
        return self.earlier


def suggestions(*locations: Location) -> SuggestLocationsResult:
    return SuggestLocationsResult(
        header=HEADER,
        status=SuggestLocationsStatus.OK,
        suggested_locations=tuple(
            SuggestedLocation(location=location, priority=index)
            for index, location in enumerate(locations)
        ),
    )


def mock_provider(capabilities: set[Capability] | None = None) -> MagicMock:
    provider = MagicMock()
    provider.network = "TEST"
    provider.capabilities = frozenset(capabilities if capabilities is not None else Capability)
    provider.suggest_locations = AsyncMock(return_value=suggestions())
    provider.query_nearby_locations = AsyncMock()
    provider.query_departures = AsyncMock()
    provider.query_trips = AsyncMock(
        return_value=QueryTripsResult.error(HEADER, QueryTripsStatus.NO_TRIPS)
    )
    provider.query_more_trips = AsyncMock()
    return provider


class TestLocationDisambiguator:
    """Tests for endpoint resolution."""

    @pytest.mark.asyncio
    async def test_when_location_is_identified_then_resolved_without_lookup(self) -> None:
        provider = mock_provider()
        disambiguator = LocationDisambiguator(provider)

        resolution = await disambiguator.resolve_endpoint(ALEX)

        assert resolution.status == ResolutionStatus.RESOLVED
        assert resolution.location is ALEX
        provider.suggest_locations.assert_not_called()

    @pytest.mark.asyncio
    async def test_when_coordinate_only_then_resolved_without_lookup(self) -> None:
        provider = mock_provider()
        location = Location.coordinate(Point(lat=52520000, lon=13400000))

        resolution = await LocationDisambiguator(provider).resolve_endpoint(location)

        assert resolution.status == ResolutionStatus.RESOLVED
        provider.suggest_locations.assert_not_called()

    @pytest.mark.asyncio
    async def test_when_no_suggestions_then_unknown(self) -> None:
        provider = mock_provider()

        resolution = await LocationDisambiguator(provider).resolve_endpoint(
            Location(type=LocationType.ANY, name="Atlantis")
        )

        assert resolution.status == ResolutionStatus.UNKNOWN
        provider.suggest_locations.assert_awaited_once_with("Atlantis", None, 0)

    @pytest.mark.asyncio
    async def test_when_single_identified_suggestion_then_resolved(self) -> None:
        provider = mock_provider()
        provider.suggest_locations.return_value = suggestions(HBF)

        resolution = await LocationDisambiguator(provider).resolve_endpoint(
            Location(type=LocationType.ANY, name="Hauptbahnhof")
        )

        assert resolution.status == ResolutionStatus.RESOLVED
        assert resolution.location == HBF

    @pytest.mark.asyncio
    async def test_when_several_suggestions_then_ambiguous_in_rank_order(self) -> None:
        """Given two matches, when resolving, then both come back highest priority first."""
        provider = mock_provider()
        provider.suggest_locations.return_value = suggestions(ALEX_BUS, ALEX)

        resolution = await LocationDisambiguator(provider).resolve_endpoint(
            Location(type=LocationType.ANY, name="Alexanderplatz")
        )

        assert resolution.status == ResolutionStatus.AMBIGUOUS
        assert resolution.candidates == (ALEX, ALEX_BUS)

    @pytest.mark.asyncio
    async def test_when_suggestions_fail_then_raises_service_down(self) -> None:
        provider = mock_provider()
        provider.suggest_locations.return_value = SuggestLocationsResult(
            header=HEADER, status=SuggestLocationsStatus.SERVICE_DOWN
        )

        with pytest.raises(ServiceDownError):
            await LocationDisambiguator(provider).resolve_endpoint(
                Location(type=LocationType.ANY, name="Alexanderplatz")
            )

    @pytest.mark.asyncio
    async def test_when_location_has_nothing_to_resolve_then_raises(self) -> None:
        with pytest.raises(InvalidArgumentError):
            await LocationDisambiguator(mock_provider()).resolve_endpoint(
                Location(type=LocationType.ANY)
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("text", "max_locations"), [("", 0), ("   ", 0), ("Alex", -1)])
    async def test_when_suggest_input_invalid_then_raises(
        self, text: str, max_locations: int
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            await LocationDisambiguator(mock_provider()).suggest_locations(
                text, max_locations=max_locations
            )


class TestTransitQueryService:
    """Tests for query orchestration."""

    @pytest.mark.asyncio
    async def test_when_endpoints_identified_then_provider_is_queried_directly(self) -> None:
        provider = mock_provider()
        service = TransitQueryService(provider)

        result = await service.query_trips(ALEX, None, HBF, DATE)

        assert result.status == QueryTripsStatus.NO_TRIPS
        provider.suggest_locations.assert_not_called()
        provider.query_trips.assert_awaited_once_with(
            ALEX, None, HBF, DATE, True, TripOptions()
        )

    @pytest.mark.asyncio
    async def test_when_name_resolves_then_resolved_location_is_used(self) -> None:
        provider = mock_provider()
        provider.suggest_locations.return_value = suggestions(HBF)
        service = TransitQueryService(provider)

        await service.query_trips(
            ALEX, None, Location(type=LocationType.ANY, name="Hbf"), DATE, departure=False
        )

        provider.query_trips.assert_awaited_once_with(
            ALEX, None, HBF, DATE, False, TripOptions()
        )

    @pytest.mark.asyncio
    async def test_when_both_endpoints_ambiguous_then_candidates_returned_together(
        self,
    ) -> None:
        """Given two ambiguous names, when querying, then both candidate lists are returned."""
        provider = mock_provider()
        provider.suggest_locations.return_value = suggestions(ALEX_BUS, ALEX)
        service = TransitQueryService(provider)

        result = await service.query_trips(
            Location(type=LocationType.ANY, name="Alex"),
            None,
            Location(type=LocationType.ANY, name="Alex"),
            DATE,
        )

        assert result.status == QueryTripsStatus.AMBIGUOUS
        assert result.ambiguous_from == (ALEX, ALEX_BUS)
        assert result.ambiguous_via is None
        assert result.ambiguous_to == (ALEX, ALEX_BUS)
        provider.query_trips.assert_not_called()

    @pytest.mark.asyncio
    async def test_when_only_destination_ambiguous_then_resolved_endpoints_are_single_candidates(
        self,
    ) -> None:
        """Given identified from and via, when the destination is ambiguous, then all return."""
        provider = mock_provider()
        provider.suggest_locations.return_value = suggestions(ALEX_BUS, ALEX)
        service = TransitQueryService(provider)

        result = await service.query_trips(
            HBF, ALEX_BUS, Location(type=LocationType.ANY, name="Alex"), DATE
        )

        assert result.status == QueryTripsStatus.AMBIGUOUS
        assert result.ambiguous_from == (HBF,)
        assert result.ambiguous_via == (ALEX_BUS,)
        assert result.ambiguous_to == (ALEX, ALEX_BUS)
        provider.query_trips.assert_not_called()

    @pytest.mark.asyncio
    async def test_when_via_unknown_then_unknown_via(self) -> None:
        provider = mock_provider()
        service = TransitQueryService(provider)

        result = await service.query_trips(
            ALEX, Location(type=LocationType.ANY, name="Atlantis"), HBF, DATE
        )

        assert result.status == QueryTripsStatus.UNKNOWN_VIA
        provider.query_trips.assert_not_called()

    @pytest.mark.asyncio
    async def test_when_suggestions_down_during_resolution_then_service_down(self) -> None:
        provider = mock_provider()
        provider.suggest_locations.side_effect = ServiceDownError("timeout")
        service = TransitQueryService(provider)

        result = await service.query_trips(
            Location(type=LocationType.ANY, name="Alex"), None, HBF, DATE
        )

        assert result.status == QueryTripsStatus.SERVICE_DOWN
        assert result.header is not None
        assert result.header.network == "TEST"

    @pytest.mark.asyncio
    async def test_when_via_unsupported_then_raises(self) -> None:
        provider = mock_provider({Capability.TRIPS, Capability.SUGGEST_LOCATIONS})
        service = TransitQueryService(provider)

        with pytest.raises(UnsupportedOperationError, match="trips_via"):
            await service.query_trips(ALEX, ALEX_BUS, HBF, DATE)

    @pytest.mark.asyncio
    async def test_when_endpoint_has_no_id_coordinate_or_name_then_raises(self) -> None:
        service = TransitQueryService(mock_provider())

        with pytest.raises(InvalidArgumentError, match="to location"):
            await service.query_trips(ALEX, None, Location(type=LocationType.ANY), DATE)

    @pytest.mark.asyncio
    async def test_when_no_later_token_then_no_trips_without_provider_call(self) -> None:
        provider = mock_provider()
        service = TransitQueryService(provider)

        result = await service.query_more_trips(FakeContext(earlier=True), later=True)

        assert result.status == QueryTripsStatus.NO_TRIPS
        provider.query_more_trips.assert_not_called()

    @pytest.mark.asyncio
    async def test_when_token_present_then_provider_pages(self) -> None:
        provider = mock_provider()
        provider.query_more_trips.side_effect = ServiceDownError("down")
        service = TransitQueryService(provider)
        context = FakeContext(earlier=True)

        result = await service.query_more_trips(context, later=False)

        assert result.status == QueryTripsStatus.SERVICE_DOWN
        provider.query_more_trips.assert_awaited_once_with(context, False)

    @pytest.mark.asyncio
    async def test_when_departures_service_down_then_status(self) -> None:
        provider = mock_provider()
        provider.query_departures.side_effect = ServiceDownError("down")

        result = await TransitQueryService(provider).query_departures("1")

        assert result.status == QueryDeparturesStatus.SERVICE_DOWN

    @pytest.mark.asyncio
    async def test_when_departures_ok_then_result_is_passed_through(self) -> None:
        provider = mock_provider()
        expected = QueryDeparturesResult(header=HEADER, status=QueryDeparturesStatus.OK)
        provider.query_departures.return_value = expected

        result = await TransitQueryService(provider).query_departures("1", max_departures=5)

        assert result is expected
        provider.query_departures.assert_awaited_once_with("1", None, 5, False)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("station_id", "max_departures"), [("", 0), (" ", 0), ("1", -1)])
    async def test_when_departure_input_invalid_then_raises(
        self, station_id: str, max_departures: int
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            await TransitQueryService(mock_provider()).query_departures(
                station_id, max_departures=max_departures
            )

    @pytest.mark.asyncio
    async def test_when_departures_not_offered_then_raises(self) -> None:
        service = TransitQueryService(mock_provider({Capability.TRIPS}))

        with pytest.raises(UnsupportedOperationError):
            await service.query_departures("1")

    @pytest.mark.asyncio
    async def test_when_nearby_location_not_identified_then_raises(self) -> None:
        service = TransitQueryService(mock_provider())

        with pytest.raises(InvalidArgumentError):
            await service.query_nearby_locations(
                {LocationType.STATION}, Location(type=LocationType.ANY, name="Alex")
            )

    @pytest.mark.asyncio
    async def test_when_nearby_service_down_then_status(self) -> None:
        provider = mock_provider()
        provider.query_nearby_locations.side_effect = ServiceDownError("down")

        result = await TransitQueryService(provider).query_nearby_locations(
            {LocationType.STATION}, ALEX
        )

        assert result.status == NearbyLocationsStatus.SERVICE_DOWN

    @pytest.mark.asyncio
    async def test_when_suggesting_then_results_are_ranked(self) -> None:
        provider = mock_provider()
        provider.suggest_locations.return_value = suggestions(ALEX_BUS, ALEX)

        result = await TransitQueryService(provider).suggest_locations("Alex")

        assert result.get_locations() == [ALEX, ALEX_BUS]
        assert result.suggested_locations[0].location == ALEX

    def test_line_style_is_delegated(self) -> None:
        provider = mock_provider()
        provider.line_style.return_value = "style"

        assert TransitQueryService(provider).line_style("BVG", None, "S5") == "style"
        provider.line_style.assert_called_once_with("BVG", None, "S5")
