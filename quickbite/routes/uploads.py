from flask import Blueprint, request, jsonify, current_app
from quickbite import db
from quickbite.models.models import Store
from quickbite.routes.guards import login_required, can_manage_store
from quickbite.services.storage_service import (
    StorageService, StorageError, PURPOSES, object_path, unique_filename, allowed_image,
)

uploads_bp = Blueprint('uploads', __name__)

# Only the store's own staff may upload these
STORE_PURPOSES = ('qr', 'banner', 'logo', 'meal')


@uploads_bp.route('/api/uploads', methods=['POST'])
@login_required
def upload_image(user):
    """Upload an image to hosted storage"""
    # Form parsing raises 413 past MAX_CONTENT_LENGTH and must stay outside the try
    upload = request.files.get('file')
    purpose = request.form.get('purpose')
    store_id = request.form.get('storeId') or request.form.get('store_id')

    try:
        # Validate required fields
        if not upload or not upload.filename:
            return jsonify({'error': 'No file provided'}), 400
        if purpose not in PURPOSES:
            return jsonify({'error': f'Invalid purpose: {purpose}'}), 400
        if not store_id:
            return jsonify({'error': 'Missing required field: storeId'}), 400
        if not allowed_image(upload.filename, upload.mimetype):
            return jsonify({'error': 'Only jpeg, jpg, png, gif and webp images are allowed'}), 400

        store = db.session.get(Store, int(store_id)) if str(store_id).isdigit() else None
        if not store:
            return jsonify({'error': 'Store not found'}), 404
        if purpose in STORE_PURPOSES and not can_manage_store(user, store):
            return jsonify({'error': 'Unauthorized'}), 403

        limit = current_app.config['MAX_UPLOAD_SIZE']
        data = upload.read(limit + 1)
        if len(data) > limit:
            return jsonify({'error': f'File exceeds the {limit // (1024 * 1024)} MB limit'}), 413

        path = object_path(purpose, store.id, unique_filename(upload.filename))
        url = StorageService().upload(path, data, upload.mimetype)

        if purpose == 'qr':
            store.qr_code_url = url
            db.session.commit()

        return jsonify({'url': url, 'path': path}), 201

    except StorageError as e:
        db.session.rollback()
        current_app.logger.error(f"Upload failed: {e}")
        return jsonify({'error': str(e)}), 500
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500
