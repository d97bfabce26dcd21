"""
Static map images for report pages.

Tries Google Static Maps, then Geoapify, then a single OpenStreetMap tile.
Providers without an API key are skipped. Images are cached in-process.
"""

import logging
import math
import time
from typing import Dict, List, Optional, Sequence, Tuple

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import MapImageConfig, get_map_image_config
from .models import validate_coordinates

logger = logging.getLogger(__name__)

Marker = Tuple[float, float]


def osm_tile_coordinates(lat: float, lon: float, zoom: int) -> Tuple[int, int]:
    """Slippy-map tile (x, y) containing a coordinate."""
    n = 2 ** zoom
    lat_rad = math.radians(lat)
    x = int(math.floor((lon + 180.0) / 360.0 * n))
    y = int(math.floor((1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n))
    return min(max(x, 0), n - 1), min(max(y, 0), n - 1)


class ImageCache:
    """TTL cache of image bytes keyed by location and size."""

    def __init__(self, ttl_hours: float = 24, max_entries: int = 50):
        self.ttl_seconds = ttl_hours * 3600
        self.max_entries = max_entries
        self.cache: Dict[str, Tuple[bytes, float]] = {}

    @staticmethod
    def make_key(lat: float, lon: float, zoom: int, width: int, height: int) -> str:
        return f"{lat:.5f},{lon:.5f},{zoom},{width}x{height}"

    def get(self, key: str) -> Optional[bytes]:
        cached = self.cache.get(key)
        if cached is None:
            return None
        data, timestamp = cached
        if time.time() - timestamp >= self.ttl_seconds:
            del self.cache[key]
            return None
        logger.debug(f"Map cache hit for {key}")
        return data

    def set(self, key: str, data: bytes):
        self.cache[key] = (data, time.time())
        if len(self.cache) > self.max_entries:
            self.prune()

    def prune(self):
        """Drop expired entries."""
        now = time.time()
        expired = [k for k, (_, ts) in self.cache.items() if now - ts >= self.ttl_seconds]
        for key in expired:
            del self.cache[key]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired map images")

    def clear(self):
        self.cache.clear()

    def __len__(self):
        return len(self.cache)


class MapImageService:
    """Fetches static map images with a provider fallback chain."""

    def __init__(self, config: Optional[MapImageConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or get_map_image_config()
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': self.config.user_agent})
        self.cache = ImageCache(self.config.cache_ttl_hours, self.config.cache_max_entries)

    def fetch_map_image(self, lat: float, lon: float, zoom: Optional[int] = None,
                        width: Optional[int] = None, height: Optional[int] = None,
                        markers: Sequence[Marker] = ()) -> Optional[bytes]:
        """
        Fetch a map image centred on (lat, lon).

        Args:
            lat: Latitude of the map centre
            lon: Longitude of the map centre
            zoom: Zoom level (default from config)
            width: Image width in pixels
            height: Image height in pixels
            markers: Extra (lat, lon) markers; the centre is always marked

        Returns:
            Image bytes, or None if every provider failed
        """
        lat, lon = validate_coordinates(lat, lon)
        zoom = self.config.default_zoom if zoom is None else zoom
        width = width or self.config.default_width
        height = height or self.config.default_height

        key = ImageCache.make_key(lat, lon, zoom, width, height)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        all_markers = [(lat, lon)] + list(markers)
        providers = [
            ('google', self.config.google_maps_api_key, self._google_request),
            ('geoapify', self.config.geoapify_api_key, self._geoapify_request),
        ]
        for name, api_key, build in providers:
            if not api_key:
                continue
            url, params = build(lat, lon, zoom, width, height, all_markers)
            data = self._try_provider(name, url, params)
            if data:
                self.cache.set(key, data)
                return data

        x, y = osm_tile_coordinates(lat, lon, zoom)
        data = self._try_provider('osm', self.config.osm_tile_url.format(zoom=zoom, x=x, y=y), {})
        if data:
            self.cache.set(key, data)
            return data

        logger.warning(f"All map providers failed for {lat:.5f},{lon:.5f}")
        return None

    def _google_request(self, lat: float, lon: float, zoom: int, width: int, height: int,
                        markers: List[Marker]) -> Tuple[str, Dict[str, str]]:
        params = {
            'center': f"{lat},{lon}",
            'zoom': str(zoom),
            'size': f"{width}x{height}",
            'maptype': 'hybrid',
            'markers': '|'.join(['color:red', 'label:P'] + [f"{m_lat},{m_lon}" for m_lat, m_lon in markers]),
            'key': self.config.google_maps_api_key,
        }
        return self.config.google_base_url, params

    def _geoapify_request(self, lat: float, lon: float, zoom: int, width: int, height: int,
                          markers: List[Marker]) -> Tuple[str, Dict[str, str]]:
        params = {
            'style': 'osm-bright',
            'width': str(width),
            'height': str(height),
            'center': f"lonlat:{lon},{lat}",
            'zoom': str(zoom),
            'marker': '|'.join(f"lonlat:{m_lon},{m_lat};color:#ff0000;size:medium" for m_lat, m_lon in markers),
            'apiKey': self.config.geoapify_api_key,
        }
        return self.config.geoapify_base_url, params

    def _try_provider(self, name: str, url: str, params: Dict[str, str]) -> Optional[bytes]:
        try:
            data = self._get_with_retry(url, params)
        except requests.RequestException as e:
            logger.warning(f"Map provider {name} failed: {e}")
            return None
        if not data:
            logger.warning(f"Map provider {name} returned an empty image")
            return None
        logger.info(f"Fetched {len(data)} byte map image from {name}")
        return data

    def _get_with_retry(self, url: str, params: Dict[str, str]) -> bytes:
        retryer = Retrying(
            stop=stop_after_attempt(self.config.max_retries),
            wait=wait_exponential(multiplier=1, min=self.config.retry_wait_min, max=self.config.retry_wait_max),
            retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
            reraise=True,
        )
        return retryer(self._get, url, params)

    def _get(self, url: str, params: Dict[str, str]) -> bytes:
        response = self.session.get(url, params=params, timeout=self.config.timeout)
        response.raise_for_status()
        content_type = response.headers.get('Content-Type', '')
        if content_type and not content_type.startswith('image/'):
            raise requests.RequestException(f"unexpected content type {content_type}")
        return response.content

    def close(self):
        self.session.close()


def fetch_map_image(lat: float, lon: float, zoom: Optional[int] = None, width: Optional[int] = None,
                    height: Optional[int] = None, markers: Sequence[Marker] = ()) -> Optional[bytes]:
    """Fetch a map image with the configured providers."""
    service = MapImageService()
    try:
        return service.fetch_map_image(lat, lon, zoom, width, height, markers)
    finally:
        service.close()
