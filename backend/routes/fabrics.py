# backend/routes/fabrics.py
from flask import Blueprint, request, jsonify, current_app
from models import db, Fabric
from services.blob_storage import get_storage
from services.catalog import delete_gallery_image, rename_if_changed
from services.images import is_image
from services.uploads import (UploadedFile, UploadError, GALLERY_SEGMENTS,
                              upload_fabric_images, upload_segment_images)
from services.view_state import (AddFabricState, NameChanged, MainImagePicked, FilesAdded,
                                 UploadStarted, FileUploaded, MetadataSaving, UploadSucceeded, UploadFailed,
                                 reduce_add_fabric, validate_add_fabric, begin_submit)
import logging

fabrics_bp = Blueprint('fabrics', __name__)
logger = logging.getLogger(__name__)


def _read_files(field_name):
    """Read every non-empty file posted under field_name into memory"""
    return [
        UploadedFile(filename=f.filename, content=f.read())
        for f in request.files.getlist(field_name)
        if f and f.filename
    ]


def _first_non_image(files):
    for upload in files:
        if not is_image(upload.content):
            return upload
    return None


def _progress_registry():
    return current_app.extensions['upload_progress']


@fabrics_bp.route('', methods=['GET'])
def get_fabrics():
    """Get all fabrics in the catalog"""
    try:
        fabrics = Fabric.query.order_by(Fabric.id).all()
        return jsonify([fabric.to_dict() for fabric in fabrics])
    except Exception as e:
        logger.error(f"Error fetching fabrics: {str(e)}")
        return jsonify({'error': 'Failed to connect to main server'}), 500


@fabrics_bp.route('/names', methods=['GET'])
def get_fabric_names():
    """Fabric names only, for pickers"""
    try:
        names = [name for (name,) in db.session.query(Fabric.name).order_by(Fabric.id).all()]
        return jsonify(names)
    except Exception as e:
        logger.error(f"Error fetching fabric names: {str(e)}")
        return jsonify({'error': 'Failed to fetch fabrics'}), 500


@fabrics_bp.route('/<int:fabric_id>', methods=['GET'])
def get_fabric(fabric_id):
    fabric = db.session.get(Fabric, fabric_id)
    if fabric is None:
        return jsonify({'error': 'No such fabric!'}), 404
    return jsonify(fabric.to_dict())


@fabrics_bp.route('', methods=['POST'])
def create_fabric():
    """
    Add a fabric with its main image and men/women/kids galleries.

    All images upload concurrently; the fabric record is written only after
    every upload has succeeded. Pass `upload_id` to poll progress at
    /api/fabrics/uploads/<upload_id> while the request runs.
    """
    state = AddFabricState()
    state = reduce_add_fabric(state, NameChanged((request.form.get('name') or '').strip()))
    main_files = _read_files('main_image')
    if main_files:
        state = reduce_add_fabric(state, MainImagePicked(main_files[0]))
    for segment in GALLERY_SEGMENTS:
        state = reduce_add_fabric(state, FilesAdded(segment, tuple(_read_files(f'{segment}_collection'))))

    prompt = validate_add_fabric(state)
    if prompt:
        return jsonify({'error': prompt, 'status': prompt}), 400

    all_files = [state.main_image, *state.men_collection, *state.women_collection, *state.kids_collection]
    rejected = _first_non_image(all_files)
    if rejected is not None:
        return jsonify({'error': f'{rejected.filename} is not an image'}), 400

    upload_id = request.form.get('upload_id')
    registry = _progress_registry()
    state = begin_submit(state)

    def on_file_uploaded():
        # Runs on upload worker threads, serialized by the progress lock
        nonlocal state
        state = reduce_add_fabric(state, FileUploaded())

    progress = registry.start(upload_id, state.file_count, on_increment=on_file_uploaded)
    state = reduce_add_fabric(state, UploadStarted(state.file_count))

    try:
        images = upload_fabric_images(
            get_storage(),
            state.name,
            state.main_image,
            {
                'men': state.men_collection,
                'women': state.women_collection,
                'kids': state.kids_collection,
            },
            progress=progress,
            max_workers=current_app.config.get('UPLOAD_MAX_WORKERS', 8),
        )

        state = reduce_add_fabric(state, MetadataSaving())
        uploaded, total, percent = state.uploaded_count, state.total_files, state.percent
        fabric = Fabric(
            name=state.name,
            main_image=images.main_image,
            men_collection=images.collections['men'],
            women_collection=images.collections['women'],
            kids_collection=images.collections['kids'],
        )
        db.session.add(fabric)
        db.session.commit()

        state = reduce_add_fabric(state, UploadSucceeded(fabric.id))
        logger.info(f"Fabric {fabric.id} added with {uploaded} images (folder {images.folder})")
        return jsonify({
            'status': state.status,
            'uploaded': uploaded,
            'total': total,
            'percent': percent,
            'fabric': fabric.to_dict()
        }), 201

    except UploadError as e:
        state = reduce_add_fabric(state, UploadFailed(str(e)))
        logger.error(f"Error adding fabric '{state.name}': {str(e)}")
        return jsonify({
            'error': state.status,
            'status': state.status,
            'uploaded': state.uploaded_count,
            'total': state.total_files,
            'percent': state.percent
        }), 500
    except Exception as e:
        db.session.rollback()
        state = reduce_add_fabric(state, UploadFailed(str(e)))
        logger.error(f"Error saving fabric '{state.name}': {str(e)}")
        return jsonify({'error': state.status, 'status': state.status}), 500
    finally:
        registry.discard(upload_id)


@fabrics_bp.route('/uploads/<upload_id>', methods=['GET'])
def get_upload_progress(upload_id):
    progress = _progress_registry().get(upload_id)
    if progress is None:
        return jsonify({'error': 'No running upload with that id'}), 404
    return jsonify(progress.to_dict())


@fabrics_bp.route('/<int:fabric_id>', methods=['PUT'])
def update_fabric(fabric_id):
    """Rename a fabric and/or replace its main image"""
    fabric = db.session.get(Fabric, fabric_id)
    if fabric is None:
        return jsonify({'error': 'No such fabric!'}), 404

    if request.is_json:
        new_name = (request.get_json(silent=True) or {}).get('name')
    else:
        new_name = request.form.get('name')
    new_main = _read_files('main_image')

    if new_main and not is_image(new_main[0].content):
        return jsonify({'error': f'{new_main[0].filename} is not an image'}), 400

    try:
        updates = {}
        renamed = rename_if_changed(fabric, new_name)
        if renamed is not None:
            updates['name'] = renamed

        if new_main:
            urls = upload_segment_images(get_storage(), fabric.id, 'main', new_main[:1])
            updates['main_image'] = urls[0]

        if updates:
            for key, value in updates.items():
                setattr(fabric, key, value)
            db.session.commit()
            logger.info(f"Fabric {fabric.id} updated: {sorted(updates)}")

        return jsonify({'updated': sorted(updates), 'fabric': fabric.to_dict()})

    except Exception as e:
        db.session.rollback()
        logger.error(f"Save edits failed for fabric {fabric_id}: {str(e)}")
        return jsonify({'error': f'Failed to save edits: {str(e)}'}), 500


@fabrics_bp.route('/<int:fabric_id>/images/<segment>', methods=['POST'])
def add_gallery_images(fabric_id, segment):
    """Append uploaded images to one of the fabric's galleries"""
    if segment not in GALLERY_SEGMENTS:
        return jsonify({'error': f'Unknown collection: {segment}'}), 404
    fabric = db.session.get(Fabric, fabric_id)
    if fabric is None:
        return jsonify({'error': 'No such fabric!'}), 404

    files = _read_files('files')
    if not files:
        return jsonify({'error': 'No files selected'}), 400
    rejected = _first_non_image(files)
    if rejected is not None:
        return jsonify({'error': f'{rejected.filename} is not an image'}), 400

    try:
        urls = upload_segment_images(
            get_storage(), fabric.id, segment, files,
            max_workers=current_app.config.get('UPLOAD_MAX_WORKERS', 8)
        )
        collection = fabric.add_images(segment, urls)
        db.session.commit()
        return jsonify({'segment': segment, 'added': urls, 'collection': collection}), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Upload error for fabric {fabric_id} {segment}: {str(e)}")
        return jsonify({'error': f'Upload failed: {str(e)}'}), 500


@fabrics_bp.route('/<int:fabric_id>/images/<segment>', methods=['DELETE'])
def delete_gallery_image_route(fabric_id, segment):
    """Remove an image from a gallery; storage cleanup is best effort"""
    if segment not in GALLERY_SEGMENTS:
        return jsonify({'error': f'Unknown collection: {segment}'}), 404
    fabric = db.session.get(Fabric, fabric_id)
    if fabric is None:
        return jsonify({'error': 'No such fabric!'}), 404

    data = request.get_json(silent=True) or {}
    url = data.get('url')
    if not url:
        return jsonify({'error': 'Image url is required'}), 400
    if url not in fabric.gallery(segment):
        return jsonify({'error': 'Image not found in this collection'}), 404

    try:
        outcome = delete_gallery_image(get_storage(), fabric, segment, url)
        return jsonify({
            'outcome': outcome.to_dict(),
            'collection': fabric.gallery(segment)
        })
    except Exception as e:
        db.session.rollback()
        logger.error(f"Delete failed for fabric {fabric_id}: {str(e)}")
        return jsonify({'error': f'Delete failed: {str(e)}'}), 500
