from __future__ import annotations
from functools import lru_cache

from fastapi import APIRouter, Depends

from astro_core.astro_core import EphemerisConfig, ephemeris_config
from astro_core.providers import Providers, default_providers
from schemas import ChartRequestIn, HarmonicIn, HarmonicOut, NatalChartOut, SynastryIn, SynastryOut
from services.harmonic_services import calculate_harmonic_match
from services.natal_services import calculate_natal_chart
from services.synastry_services import calculate_synastry
from settings import DEFAULT_HOUSE_SYSTEM, EPHEMERIS_SOURCE, EPHE_PATH, GEOCODER_TIMEOUT, GEOCODER_USER_AGENT


@lru_cache()
def get_providers() -> Providers:
    """Process-wide collaborator adapters, built on first use and read-only afterwards."""
    return default_providers(
        user_agent=GEOCODER_USER_AGENT,
        geocoder_timeout=GEOCODER_TIMEOUT,
        ephe_path=EPHE_PATH,
    )


@lru_cache()
def get_config() -> EphemerisConfig:
    return ephemeris_config(EPHEMERIS_SOURCE, DEFAULT_HOUSE_SYSTEM)


router = APIRouter(prefix="/api")


# Handlers are sync: FastAPI runs them in its threadpool, and the ephemeris calls block.
@router.post("/chart", response_model=NatalChartOut, tags=["Chart"])
def chart(
    payload: ChartRequestIn,
    providers: Providers = Depends(get_providers),
    config: EphemerisConfig = Depends(get_config),
):
    return calculate_natal_chart(payload, providers=providers, config=config)


@router.post("/synastry", response_model=SynastryOut, tags=["Compatibility"])
def synastry(
    payload: SynastryIn,
    providers: Providers = Depends(get_providers),
    config: EphemerisConfig = Depends(get_config),
):
    return calculate_synastry(payload, providers=providers, config=config)


@router.post("/harmonic", response_model=HarmonicOut, tags=["Compatibility"])
def harmonic(
    payload: HarmonicIn,
    providers: Providers = Depends(get_providers),
    config: EphemerisConfig = Depends(get_config),
):
    return calculate_harmonic_match(payload, providers=providers, config=config)
