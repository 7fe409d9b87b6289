# Hosted object storage (Supabase Storage) uploads
import os
import random
import time
import requests
from flask import current_app
from werkzeug.utils import secure_filename

PURPOSES = ('payment_proof', 'qr', 'banner', 'logo', 'meal', 'review')


class StorageError(Exception):
    pass


def object_path(purpose, store_id, filename):
    """Path convention: {purpose}/{storeId}/{filename}"""
    return f'{purpose}/{store_id}/{filename}'


def unique_filename(original_name):
    ext = os.path.splitext(secure_filename(original_name or ''))[1].lower()
    return f'{int(time.time() * 1000)}-{random.randint(0, 10 ** 9)}{ext}'


def allowed_image(filename, mimetype):
    ext = os.path.splitext(filename or '')[1].lower().lstrip('.')
    allowed = current_app.config['ALLOWED_IMAGE_EXTENSIONS']
    subtype = (mimetype or '').split('/')[-1].lower()
    return ext in allowed and subtype in allowed


class StorageService:
    def __init__(self):
        config = current_app.config
        self.base_url = (config.get('SUPABASE_URL') or '').rstrip('/')
        self.service_key = config.get('SUPABASE_SERVICE_KEY')
        self.bucket = config.get('STORAGE_BUCKET', 'uploads')
        self.timeout = config.get('SUPABASE_TIMEOUT', 10)

    def public_url(self, path):
        return f'{self.base_url}/storage/v1/object/public/{self.bucket}/{path}'

    def upload(self, path, data, content_type):
        """Upload bytes to the bucket and return the public URL"""
        if not self.base_url or not self.service_key:
            raise StorageError('Missing SUPABASE_URL or SUPABASE_SERVICE_KEY')

        try:
            response = requests.post(
                f'{self.base_url}/storage/v1/object/{self.bucket}/{path}',
                data=data,
                headers={
                    'apikey': self.service_key,
                    'Authorization': f'Bearer {self.service_key}',
                    'Content-Type': content_type or 'application/octet-stream',
                    'x-upsert': 'true',
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StorageError(f'Storage unreachable: {e}')

        if response.status_code >= 400:
            raise StorageError(response.text or f'Upload failed with HTTP {response.status_code}')

        current_app.logger.info(f"Uploaded {path} to bucket {self.bucket}")
        return self.public_url(path)
