"""Shared HAFAS response fixtures."""

from typing import Any

import pytest

from transit_bridge.domain.models import Product, ProductCodec

# Test vector of the encoded polyline algorithm, 44 points
POLYLINE = (
    "}qfeHyn|bBnBdA\\R]xBzA|@r@f@u@hCWS{@bCe@t@e@v@h@vCIFu@`@MPDJ@L?NAPIZXf@|@`Br@pAHLZp@"
    "~@jBbArBbBjDLTTd@fAzBcFnH[d@Vf@iA`BWb@t@zAb@~@LTNNdCzE~A{BAA??"
)

HAFAS_CODEC = ProductCodec.of(
    [
        Product.SUBURBAN_TRAIN,
        Product.SUBWAY,
        Product.TRAM,
        Product.BUS,
        Product.FERRY,
        Product.HIGH_SPEED_TRAIN,
        Product.REGIONAL_TRAIN,
    ]
)


@pytest.fixture
def hafas_codec() -> ProductCodec:
    return HAFAS_CODEC


@pytest.fixture
def polyline() -> str:
    return POLYLINE


@pytest.fixture
def hafas_common() -> dict[str, Any]:
    """A ``common`` block with stations, an address, two lines and remarks."""
    return {
        "locL": [
            {
                "lid": "A=1@O=Alexanderplatz@X=13411267@Y=52521512@L=900100003@",
                "type": "S",
                "name": "Alexanderplatz",
                "extId": "900100003",
                "crd": {"x": 13411267, "y": 52521512},
                "crdSysX": 0,
                "pCls": 15,
            },
            {
                "type": "S",
                "name": "Hauptbahnhof",
                "extId": "900003201",
                "crd": {"x": 13369548, "y": 52525589},
            },
            {
                "type": "A",
                "name": "Invalidenstraße 1, Berlin",
                "lid": "A=2@O=Invalidenstraße 1, Berlin@X=13370000@Y=52526000@",
                "crd": {"x": 13370000, "y": 52526000},
            },
            {
                "type": "S",
                "name": "Alexanderplatz (Bus)",
                "extId": "900100707",
                "mMastLocX": 0,
            },
            {
                "type": "S",
                "name": "Friedrichstraße",
                "extId": "0900100001",
            },
        ],
        "prodL": [
            {
                "name": "S5",
                "number": "5",
                "cls": 1,
                "icoX": 0,
                "oprX": 0,
                "prodCtx": {"lineId": "4-s5"},
            },
            {"name": "Bus 100", "nameS": "100", "number": "100", "cls": 8},
        ],
        "icoL": [
            {"bg": {"r": 255, "g": 0, "b": 0}, "fg": {"r": 255, "g": 255, "b": 255}, "shp": "C"},
        ],
        "opL": [{"name": "S-Bahn Berlin"}],
        "remL": [
            {"code": "l?", "txtN": "Works between Alexanderplatz and Hauptbahnhof"},
            {"code": "FK", "txtN": "Bicycles allowed"},
            {"code": "l?", "txtS": "Delays", "txtN": "Delays expected all day"},
        ],
        "polyL": [{"delta": True, "crdEncYX": POLYLINE}],
        "crdSysL": [{"type": "WGS84"}],
    }


@pytest.fixture
def hafas_connection() -> dict[str, Any]:
    """A connection: S5 ride from Alexanderplatz to Hauptbahnhof, then a walk."""
    return {
        "cid": "C-0",
        "date": "20240301",
        "dep": {"locX": 0},
        "arr": {"locX": 2},
        "secL": [
            {
                "type": "JNY",
                "dep": {"locX": 0, "dTimeS": "100000", "dTimeR": "100200", "dPlatfS": "1"},
                "arr": {"locX": 1, "aTimeS": "101500", "aPltfS": {"type": "PL", "txt": "15"}},
                "jny": {
                    "prodX": 0,
                    "dirTxt": "Potsdam Hbf",
                    "remL": [{"remX": 0}, {"remX": 1}, {"remX": 2}],
                    "stopL": [
                        {"locX": 0, "dTimeS": "100000"},
                        {"locX": 4, "aTimeS": "100500", "dTimeS": "100600"},
                        {"locX": 1, "aTimeS": "101500"},
                    ],
                    "polyG": {"polyXL": [0], "crdSysX": 0},
                },
            },
            {
                "type": "WALK",
                "dep": {"locX": 1, "dTimeS": "101200"},
                "arr": {"locX": 2, "aTimeS": "102200"},
                "gis": {"dist": 600},
            },
        ],
        "trfRes": {
            "fareSetL": [
                {
                    "fareL": [
                        {
                            "name": "Berlin AB",
                            "ticketL": [
                                {"name": "Einzelfahrschein Erwachsene", "cur": "EUR", "prc": 350},
                                {"name": "Einzelfahrschein Kind", "cur": "EUR", "prc": 220},
                            ],
                        }
                    ]
                }
            ]
        },
        "ovwTrfRefL": [
            {"type": "T", "fareSetX": 0, "fareX": 0, "ticketX": 0},
            {"type": "T", "fareSetX": 0, "fareX": 0, "ticketX": 1},
        ],
    }


@pytest.fixture
def hafas_trips_res(
    hafas_common: dict[str, Any], hafas_connection: dict[str, Any]
) -> dict[str, Any]:
    return {
        "common": hafas_common,
        "outConL": [hafas_connection],
        "outCtxScrF": "3|OF|MT#14#501234",
        "outCtxScrB": "",
    }


@pytest.fixture
def hafas_departures_res(hafas_common: dict[str, Any]) -> dict[str, Any]:
    """Departures from Alexanderplatz and, as an equivalent, its bus stop."""
    return {
        "common": hafas_common,
        "jnyL": [
            {
                "date": "20240301",
                "dirTxt": "Potsdam Hbf",
                "stbStop": {"locX": 0, "dProdX": 0, "dTimeS": "101000", "dPlatfS": "2"},
                "remL": [{"remX": 0}],
            },
            {
                "date": "20240301",
                "dirTxt": "Hauptbahnhof",
                "stbStop": {
                    "locX": 0,
                    "dProdX": 1,
                    "dTimeS": "100500",
                    "dTimeR": "100700",
                    "dCncl": True,
                },
                "stopL": [{"locX": 0}, {"locX": 1}],
            },
            {
                "date": "20240301",
                "dirTxt": "Spandau",
                "stbStop": {"locX": 3, "dProdX": 1, "dTimeS": "100000"},
            },
            {
                "date": "20240301",
                "dirTxt": "Nowhere",
                "stbStop": {"locX": 0, "dTimeS": "100000"},
            },
        ],
    }
