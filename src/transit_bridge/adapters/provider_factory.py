"""Builds the configured network provider."""

import logging
from typing import TYPE_CHECKING

from transit_bridge.adapters.api_request_logger import RequestLogger
from transit_bridge.adapters.config import TransitConfig
from transit_bridge.adapters.http_client import TransitHttpClient
from transit_bridge.adapters.line_styles import LineStyleResolver
from transit_bridge.domain.models import ProductCodec
from transit_bridge.domain.ports import NetworkProvider

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from aiohttp import ClientSession


def create_http_client(
    config: TransitConfig, session: "ClientSession | None" = None
) -> TransitHttpClient:
    return TransitHttpClient(
        session=session,
        user_agent=config.user_agent,
        timeout_seconds=config.http_timeout_seconds,
        connect_timeout_seconds=config.http_connect_timeout_seconds,
        max_retries=config.http_max_retries,
        request_logger=RequestLogger(config.log_requests, config.log_request_body_chars),
    )


def create_provider(
    config: TransitConfig, session: "ClientSession | None" = None
) -> NetworkProvider:
    """Create the provider selected by ``config.provider``.

    Args:
        config: Backend, transport and style settings.
        session: aiohttp session shared by all requests of the provider.

    Returns:
        A NavitiaProvider or a HafasProvider.
    """
    from transit_bridge.adapters.hafas_api import HafasProvider
    from transit_bridge.adapters.hafas_api.names import SPLITTERS
    from transit_bridge.adapters.navitia_api import NavitiaProvider

    http_client = create_http_client(config, session)
    style_resolver = LineStyleResolver.from_config(config.get_line_styles_config())
    if len(style_resolver):
        logger.info(f"Loaded {len(style_resolver)} line style(s) from {config.config_file}")

    if config.provider == "hafas":
        checksum_salt, mic_mac_salt = config.get_hafas_salts()
        logger.info(f"Using HAFAS backend at {config.hafas_api_base} for {config.network}")
        return HafasProvider(
            http_client,
            network=config.network,
            zone=config.get_zone(),
            api_base=config.hafas_api_base,
            product_codec=ProductCodec.of(config.get_hafas_products_map()),
            endpoint=config.hafas_api_endpoint,
            version=config.hafas_api_version,
            client=config.hafas_api_client,
            auth=config.hafas_api_auth,
            ext=config.hafas_api_ext,
            checksum_salt=checksum_salt,
            mic_mac_salt=mic_mac_salt,
            style_resolver=style_resolver,
            station_splitter=SPLITTERS[config.hafas_station_name_split],
            address_splitter=SPLITTERS[config.hafas_address_split],
        )

    logger.info(f"Using Navitia backend region {config.navitia_region} for {config.network}")
    return NavitiaProvider(
        http_client,
        network=config.network,
        region=config.navitia_region,
        zone=config.get_zone(),
        api_base=config.navitia_api_base,
        authorization=config.navitia_authorization,
        style_resolver=style_resolver,
        num_trips=config.navitia_num_trips,
    )
