"""Stock photo lookup for generated recipes.

Providers are tried in order (Unsplash, Pexels, Foodish) and the first hit is
cached on disk for a day. Provider failures are logged and skipped; the
category default image is returned when every provider misses.
"""

import hashlib
import json
import logging
import time
from collections.abc import Callable
from pathlib import Path

import requests

from moodchef import config
from moodchef.storage import StorageSaveError, write_json_atomic

logger = logging.getLogger(__name__)


def _is_timestamp(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ImageService:
    """Find a photo URL for a recipe name."""

    UNSPLASH_URL = 'https://api.unsplash.com/search/photos'
    PEXELS_URL = 'https://api.pexels.com/v1/search'
    FOODISH_URL = 'https://foodish-api.herokuapp.com/api/'
    REQUEST_TIMEOUT = 5

    def __init__(
        self,
        unsplash_key: str | None = None,
        pexels_key: str | None = None,
        cache_dir: Path | str = config.IMAGE_CACHE_DIR,
        ttl_seconds: int = config.IMAGE_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.session = requests.Session()
        self.unsplash_key = unsplash_key
        self.pexels_key = pexels_key
        self.cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def get_recipe_image(self, recipe_name: str, category: str = "food") -> str:
        """Return a photo URL for ``recipe_name``, falling back to the category default."""
        cached = self.get_cached_image(recipe_name)
        if cached:
            return cached

        for provider in (self.search_unsplash, self.search_pexels, self.get_foodish_image):
            image_url = provider(recipe_name)
            if image_url:
                self.cache_image(recipe_name, image_url)
                return image_url

        return self.default_image(category)

    @staticmethod
    def default_image(category: str) -> str:
        images = config.DEFAULT_CATEGORY_IMAGES
        return images.get(category, images["food"])

    def _get_json(self, url: str, provider: str, **kwargs) -> dict | None:
        try:
            response = self.session.get(url, timeout=self.REQUEST_TIMEOUT, **kwargs)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Image provider request failed", extra={"provider": provider, "error": str(e)})
            return None
        return data if isinstance(data, dict) else None

    def search_unsplash(self, recipe_name: str) -> str | None:
        if not self.unsplash_key:
            return None
        data = self._get_json(
            self.UNSPLASH_URL,
            "unsplash",
            params={'query': f"{recipe_name} food delicious", 'per_page': 5, 'orientation': 'landscape'},
            headers={'Authorization': f"Client-ID {self.unsplash_key}"},
        )
        results = (data or {}).get('results') or []
        if results and isinstance(results[0], dict):
            return (results[0].get('urls') or {}).get('regular')
        return None

    def search_pexels(self, recipe_name: str) -> str | None:
        if not self.pexels_key:
            return None
        data = self._get_json(
            self.PEXELS_URL,
            "pexels",
            params={'query': f"{recipe_name} food dish", 'per_page': 5, 'orientation': 'landscape'},
            headers={'Authorization': self.pexels_key},
        )
        photos = (data or {}).get('photos') or []
        if photos and isinstance(photos[0], dict):
            return (photos[0].get('src') or {}).get('large')
        return None

    def get_foodish_image(self, recipe_name: str) -> str | None:
        # Foodish serves a random dish; the name is not used
        data = self._get_json(self.FOODISH_URL, "foodish")
        image = (data or {}).get('image')
        return image if isinstance(image, str) and image else None

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    @staticmethod
    def cache_key(recipe_name: str) -> str:
        return hashlib.md5(recipe_name.lower().strip().encode('utf-8')).hexdigest()

    def _cache_file(self, recipe_name: str) -> Path:
        return self.cache_dir / f"{self.cache_key(recipe_name)}.json"

    def cache_image(self, recipe_name: str, image_url: str) -> None:
        now = self.clock()
        entry = {
            "recipeName": recipe_name,
            "imageUrl": image_url,
            "timestamp": now,
            "expiresAt": now + self.ttl_seconds,
        }
        try:
            write_json_atomic(self._cache_file(recipe_name), entry)
        except StorageSaveError:
            logger.warning("Failed to cache recipe image", extra={"recipe_name": recipe_name})

    def get_cached_image(self, recipe_name: str) -> str | None:
        """Cached URL for a recipe, or None on a miss. Expired entries are deleted."""
        cache_file = self._cache_file(recipe_name)
        try:
            with open(cache_file) as f:
                entry = json.load(f)
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(entry, dict):
            return None

        expires_at = entry.get("expiresAt", 0)
        if _is_timestamp(expires_at) and self.clock() < expires_at:
            return entry.get("imageUrl")

        cache_file.unlink(missing_ok=True)
        return None

    def clear_expired_cache(self) -> int:
        """Delete expired or unreadable cache entries and return how many were removed."""
        if not self.cache_dir.is_dir():
            return 0

        removed = 0
        now = self.clock()
        for cache_file in self.cache_dir.glob("*.json"):
            try:
                with open(cache_file) as f:
                    expires_at = json.load(f).get("expiresAt", 0)
            except (OSError, json.JSONDecodeError, AttributeError):
                expires_at = 0
            if not _is_timestamp(expires_at) or now >= expires_at:
                cache_file.unlink(missing_ok=True)
                removed += 1

        logger.info("Cleared expired image cache entries", extra={"removed": removed})
        return removed
