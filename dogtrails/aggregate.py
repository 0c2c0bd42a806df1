import logging
from concurrent.futures import ThreadPoolExecutor

from dogtrails import http_session
from dogtrails.cache import OverpassCache, DocCache
from dogtrails.doc import fetch_doc_tracks_all
from dogtrails.overpass import OVERPASS_SERVERS, fetch_overpass_with_fallback

logger = logging.getLogger(__name__)


class TrailService:
    """Fetches trails for a query from Overpass and (when keyed) DOC."""

    def __init__(self, overpass_urls=None, doc_api_key=None, session=None,
                 overpass_cache=None, doc_cache=None):
        self.overpass_urls = list(OVERPASS_SERVERS if overpass_urls is None else overpass_urls)
        self.doc_api_key = doc_api_key or None
        self.session = session or http_session
        self.overpass_cache = overpass_cache or OverpassCache()
        self.doc_cache = doc_cache or DocCache()
        self._executor = ThreadPoolExecutor(max_workers=2)

    def fetch_trails(self, query):
        """Overpass trails followed by DOC trails for the query's bbox.

        Raises TrailError when every Overpass server fails. DOC failures of
        any kind only log and contribute nothing.
        """
        bbox = query.bbox()

        doc_future = None
        if self.doc_api_key:
            doc_future = self._executor.submit(self._fetch_doc_cached, bbox)

        try:
            combined = self.overpass_cache.get(bbox, self._fetch_overpass)
        except Exception:
            # DOC keeps running to warm its cache; log its outcome later
            if doc_future is not None:
                doc_future.add_done_callback(self._doc_result)
            raise

        if doc_future is not None:
            combined.extend(self._doc_result(doc_future))

        return combined

    @staticmethod
    def _doc_result(doc_future):
        try:
            return doc_future.result()
        except Exception as e:
            logger.warning(f'DOC fetch failed: {e}')
            return []

    def _fetch_overpass(self, bbox):
        return fetch_overpass_with_fallback(self.session, self.overpass_urls, bbox)

    def _fetch_doc_cached(self, bbox):
        return self.doc_cache.get(bbox, lambda: fetch_doc_tracks_all(self.session, self.doc_api_key))

    def close(self):
        self._executor.shutdown(wait=False)
