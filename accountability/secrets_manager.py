import json
import logging
import os
import time
from typing import Any, Dict, Tuple

import boto3

logger = logging.getLogger(__name__)

DEFAULT_DB_SECRET = "accountability-db"


class SecretsManager:
    """
    Reads production credentials from AWS Secrets Manager.

    Values are cached per secret id for `cache_ttl` seconds so rotated
    credentials are picked up without a restart. If a refresh fails the
    last known value is served.
    """

    def __init__(self, region_name: str = None, cache_ttl: int = 300):
        self.region_name = region_name or os.environ.get('AWS_REGION', 'us-east-1')
        self.cache_ttl = cache_ttl
        self._client = None
        self._cache: Dict[str, Tuple[str, float]] = {}

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.session.Session().client(
                service_name='secretsmanager',
                region_name=self.region_name
            )
        return self._client

    def _fetch(self, secret_id: str) -> str:
        response = self.client.get_secret_value(SecretId=secret_id)
        if 'SecretBinary' in response:
            return response['SecretBinary']
        return response['SecretString']

    def get_secret(self, secret_id: str) -> str:
        cached = self._cache.get(secret_id)
        now = time.time()
        if cached and now - cached[1] < self.cache_ttl:
            return cached[0]

        logger.info(f"Fetching secret {secret_id}")
        try:
            value = self._fetch(secret_id)
        except Exception as e:
            if cached:
                logger.warning(f"Refreshing secret {secret_id} failed, serving cached value: {e}")
                return cached[0]
            logger.error(f"Failed to get secret {secret_id}: {e}")
            raise
        self._cache[secret_id] = (value, now)
        return value

    def get_json_secret(self, secret_id: str) -> Dict[str, Any]:
        return json.loads(self.get_secret(secret_id))

    def clear_cache(self):
        self._cache.clear()

    def get_db_credentials(self) -> Dict[str, str]:
        """RDS-managed secret with username, password, host, port and dbname."""
        return self.get_json_secret(os.environ.get('DATABASE_SECRETS_NAME', DEFAULT_DB_SECRET))

    def get_push_notification_url(self) -> str:
        """
        The push relay endpoint. It lives in its own secret when
        PUSH_NOTIFICATION_URL_SECRET_NAME is set, otherwise alongside the
        database credentials.
        """
        secret_id = os.environ.get("PUSH_NOTIFICATION_URL_SECRET_NAME")
        if secret_id:
            return self.get_secret(secret_id)
        return self.get_db_credentials()['push_notification_url']
