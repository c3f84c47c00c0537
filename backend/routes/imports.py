# backend/routes/imports.py
from flask import Blueprint, request, jsonify
from models import db, Machine
from services.ingest import (IngestError, MalformedRowError, MachineBlock, read_grid,
                             consolidate_fabric_machines, segment_order_blocks,
                             resolve_machine_existence, plain_cell)
import logging

imports_bp = Blueprint('imports', __name__)
logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'xlsx', 'xlsm'}


def _uploaded_workbook():
    """Returns (content, error_response) for the posted spreadsheet"""
    file = request.files.get('file')
    if not file or file.filename == '':
        return None, (jsonify({'error': 'No file'}), 400)
    ext = file.filename.rsplit('.', 1)[-1].lower() if '.' in file.filename else ''
    if ext not in ALLOWED_EXTENSIONS:
        return None, (jsonify({'error': 'Please upload an .xlsx workbook'}), 400)
    return file.read(), None


def _ingest_error_response(error):
    body = {'error': str(error)}
    if isinstance(error, MalformedRowError):
        body['row'] = error.row_index
        body['reason'] = error.reason
    return jsonify(body), 400


@imports_bp.route('/fabric-machines', methods=['POST'])
def import_fabric_machines():
    """Bulk fabric sheet: fabric name | machine tokens joined with '-'"""
    content, error = _uploaded_workbook()
    if error:
        return error

    try:
        consolidated = consolidate_fabric_machines(read_grid(content))
        return jsonify([
            {'machineName': machine, 'fabrics': [plain_cell(f) for f in fabrics]}
            for machine, fabrics in consolidated.items()
        ])
    except IngestError as e:
        logger.warning(f"Fabric/machine import rejected: {e}")
        return _ingest_error_response(e)
    except Exception as e:
        logger.error(f"Error importing fabric/machine sheet: {str(e)}")
        return jsonify({'error': f'Failed to import fabric sheet: {str(e)}'}), 500


@imports_bp.route('/orders-plan', methods=['POST'])
def import_orders_plan():
    """Orders plan sheet: machine header rows followed by their order rows"""
    content, error = _uploaded_workbook()
    if error:
        return error

    try:
        blocks = segment_order_blocks(read_grid(content))
        return jsonify([block.to_dict() for block in blocks])
    except IngestError as e:
        logger.warning(f"Orders plan import rejected: {e}")
        return _ingest_error_response(e)
    except Exception as e:
        logger.error(f"Error importing orders plan: {str(e)}")
        return jsonify({'error': f'Failed to import orders plan: {str(e)}'}), 500


@imports_bp.route('/orders-plan/check', methods=['POST'])
def check_orders_plan_machines():
    """Mark which imported machine blocks match a machine already on file"""
    data = request.get_json(silent=True) or {}
    raw_blocks = data.get('blocks')
    if not isinstance(raw_blocks, list) or not all(isinstance(b, dict) for b in raw_blocks):
        return jsonify({'error': 'blocks must be a list of machine blocks'}), 400

    try:
        blocks = [MachineBlock.from_dict(b) for b in raw_blocks]
        names = [name for (name,) in db.session.query(Machine.name).all()]
        resolved = resolve_machine_existence(blocks, names)
        return jsonify([block.to_dict() for block in resolved])
    except Exception as e:
        logger.error(f"Error checking machines: {str(e)}")
        return jsonify({'error': 'Failed to check machines'}), 500
