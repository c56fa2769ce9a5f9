from flask import Blueprint, render_template, request, redirect, url_for, jsonify, flash, current_app
from datetime import date
import logging
import uuid

from errors import AppError, InvalidInput, NotFoundError, ValidationError
from formatting import display_name
from document import build_document
from listing import (filter_parties, filter_quotations, quotations_for_party, recent_quotations,
                     sort_quotations, total_sales)
from catalog import SearchFlags
from session import QuotationSession

logger = logging.getLogger(__name__)

main_bp = Blueprint('main', __name__)

_ITEM_TEXT_FIELDS = ('category', 'brand', 'model', 'hsn_sac', 'warranty')
_ITEM_PRICE_FIELDS = ('purchase_incl_tax', 'sale_incl_tax', 'purchase_excl_tax', 'sale_excl_tax',
                      'tax_rate_percent')


def _gateway():
    return current_app.extensions['quotation_gateway']


def _catalog():
    return current_app.extensions['quotation_catalog']


def _flow(flow_id):
    flows = current_app.extensions['quotation_flows']
    session = flows.get(flow_id)
    if session is None:
        raise NotFoundError(f"Quotation flow {flow_id} not found")
    return session


def _new_flow():
    session = QuotationSession.from_config(current_app.config)
    flow_id = uuid.uuid4().hex
    with current_app.extensions['quotation_flows_lock']:
        current_app.extensions['quotation_flows'][flow_id] = session
    logger.info(f"Started quotation flow {flow_id}")
    return flow_id, session


def _flow_response(flow_id, session, status=200, **extra):
    body = {'success': True, 'flow_id': flow_id, 'quotation': session.to_dict()}
    body.update(extra)
    return jsonify(body), status


def _record_dict(record):
    data = record.to_dict()
    data['display_name'] = display_name(record)
    return data


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError('Invalid request data')
    return data


def _parse_date(value, label):
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {label}. Use YYYY-MM-DD.')


def _item_fields(data):
    fields = {}
    for key in _ITEM_TEXT_FIELDS:
        if key in data:
            fields[key] = str(data[key] or '').strip()
    try:
        if 'quantity' in data:
            fields['quantity'] = int(float(data['quantity']))
        for key in _ITEM_PRICE_FIELDS:
            if key in data:
                fields[key] = float(data[key])
    except (TypeError, ValueError) as e:
        raise ValidationError(f'Invalid data: {e}')
    return fields


@main_bp.app_errorhandler(AppError)
def handle_app_error(error):
    logger.error(f"{error.error_type}: {error.message}")
    return jsonify(error.to_dict()), error.http_status


@main_bp.app_errorhandler(InvalidInput)
def handle_invalid_input(error):
    return jsonify({'success': False, 'error': str(error), 'type': 'VALIDATION_ERROR'}), 400


@main_bp.route('/')
def dashboard():
    quotations = _gateway().list_all()
    return jsonify({
        'total_quotations': len(quotations),
        'total_sales': total_sales(quotations),
        'recent': [_record_dict(q) for q in recent_quotations(quotations)],
    })


@main_bp.route('/health')
def health():
    client = _gateway().client
    return jsonify({'backend': client.health()})


# -- parties -------------------------------------------------------------------

@main_bp.route('/parties', methods=['GET', 'POST'])
def parties():
    if request.method == 'POST':
        data = _json_body()
        party = _gateway().create_party(data.get('name', ''), data.get('phone', ''), data.get('address', ''))
        return jsonify({'success': True, 'party': party.to_dict()}), 201

    found = filter_parties(_gateway().list_parties(), request.args.get('q', ''))
    return jsonify([p.to_dict() for p in found])


@main_bp.route('/parties/<party_id>')
def party_details(party_id):
    try:
        party = _gateway().get_party(party_id)
    except NotFoundError:
        # The party may have been deleted since the list was shown
        flash('Party not found. It may have been deleted.', 'error')
        return redirect(url_for('main.parties'))

    quotations = _gateway().list_for_party(party_id, refresh=request.args.get('refresh') == '1')
    quotations = sort_quotations(quotations, 'date', 'desc')
    return jsonify({'party': party.to_dict(), 'quotations': [_record_dict(q) for q in quotations]})


@main_bp.route('/parties/<party_id>', methods=['PUT'])
def edit_party(party_id):
    data = _json_body()
    party = _gateway().get_party(party_id)
    party.name = str(data.get('name', party.name)).strip()
    party.phone = str(data.get('phone', party.phone)).strip()
    party.address = str(data.get('address', party.address)).strip()
    party = _gateway().update_party(party)
    return jsonify({'success': True, 'party': party.to_dict()})


@main_bp.route('/parties/<party_id>', methods=['DELETE'])
def delete_party(party_id):
    quotations = quotations_for_party(_gateway().list_all(), party_id)
    if quotations:
        raise ValidationError(f'Cannot delete party with {len(quotations)} linked quotation(s). '
                              'Delete those first.')
    _gateway().delete_party(party_id)
    return jsonify({'success': True})


# -- catalog -----------------------------------------------------------------------

@main_bp.route('/catalog')
def catalog():
    term = request.args.get('q', '').strip()
    if not term:
        category = request.args.get('category')
        entries = _catalog().by_category(category) if category else _catalog().load()
        return jsonify({
            'fallback': _catalog().from_fallback,
            'categories': _catalog().categories(),
            'entries': [{'category': e.category, 'brand': e.brand,
                         'models': [vars(m) for m in e.models]} for e in entries],
        })

    only = request.args.get('fields')
    if only:
        wanted = {f.strip() for f in only.split(',')}
        flags = SearchFlags(category='category' in wanted, brand='brand' in wanted, model='model' in wanted,
                            tax_code='tax_code' in wanted, warranty='warranty' in wanted,
                            exact_only=request.args.get('exact') == '1')
    else:
        flags = SearchFlags(exact_only=request.args.get('exact') == '1')

    matches = _catalog().search(term, flags)
    return jsonify([{'score': m.score, 'category': m.entry.category, 'brand': m.entry.brand,
                     **vars(m.model)} for m in matches])


# -- saved quotations ----------------------------------------------------------------

@main_bp.route('/quotations')
def quotations():
    records = _gateway().list_all(refresh=request.args.get('refresh') == '1')
    records = filter_quotations(records, request.args.get('q', ''))
    try:
        records = sort_quotations(records, request.args.get('sort', 'date'), request.args.get('direction', 'desc'))
    except ValueError as e:
        raise ValidationError(str(e))
    return jsonify([_record_dict(q) for q in records])


@main_bp.route('/quotations/<quotation_id>/revisions', methods=['GET'])
def quotation_revisions(quotation_id):
    return jsonify([_record_dict(q) for q in _gateway().list_revisions(quotation_id)])


@main_bp.route('/quotations/<quotation_id>/revisions', methods=['POST'])
def create_revision(quotation_id):
    flow_id, session = _new_flow()
    record = _gateway().create_revision(quotation_id, session)
    return _flow_response(flow_id, session, 201, saved=_record_dict(record))


# -- quotation-editing flows ---------------------------------------------------------

@main_bp.route('/flows', methods=['POST'])
def start_flow():
    data = request.get_json(silent=True) or {}
    flow_id, session = _new_flow()
    if data.get('party_id'):
        session.set_selected_party(_gateway().get_party(data['party_id']))
    return _flow_response(flow_id, session, 201)


@main_bp.route('/flows/<flow_id>')
def view_flow(flow_id):
    return _flow_response(flow_id, _flow(flow_id))


@main_bp.route('/flows/<flow_id>', methods=['PATCH'])
def edit_flow(flow_id):
    session = _flow(flow_id)
    data = _json_body()
    if 'notes' in data:
        session.set_notes(data['notes'])
    if 'terms' in data:
        session.set_terms(data['terms'])
    session.set_dates(
        quotation_date=_parse_date(data['quotation_date'], 'quotation date') if data.get('quotation_date') else None,
        valid_until=_parse_date(data['valid_until'], 'valid until date') if data.get('valid_until') else None,
    )
    business = data.get('business_details')
    if business:
        allowed = session.business_details.to_dict()
        session.set_business_details(**{k: str(v) for k, v in business.items() if k in allowed})
    return _flow_response(flow_id, session)


@main_bp.route('/flows/<flow_id>', methods=['DELETE'])
def close_flow(flow_id):
    with current_app.extensions['quotation_flows_lock']:
        session = current_app.extensions['quotation_flows'].pop(flow_id, None)
    if session is not None:
        session.reset()
    return jsonify({'success': True})


@main_bp.route('/flows/<flow_id>/party', methods=['PUT'])
def select_party(flow_id):
    session = _flow(flow_id)
    party_id = _json_body().get('party_id')
    if not party_id:
        raise ValidationError('party_id is required')
    session.set_selected_party(_gateway().get_party(party_id))
    return _flow_response(flow_id, session)


@main_bp.route('/flows/<flow_id>/items', methods=['POST'])
def add_item(flow_id):
    session = _flow(flow_id)
    fields = _item_fields(_json_body())
    quantity = fields.get('quantity', 1)

    # A category/brand/model without prices is a catalog pick
    if not any(k in fields for k in _ITEM_PRICE_FIELDS):
        found = _catalog().find(fields.get('category'), fields.get('brand'), fields.get('model'))
        if found is None:
            raise NotFoundError('Component not found in catalog')
        entry, model = found
        item = session.add_catalog_item(entry, model, quantity=quantity)
    else:
        item = session.add_item(**fields)
    return _flow_response(flow_id, session, 201, item=item.to_dict())


@main_bp.route('/flows/<flow_id>/items/<item_id>', methods=['PATCH'])
def update_item(flow_id, item_id):
    session = _flow(flow_id)
    item = session.update_item(item_id, **_item_fields(_json_body()))
    return _flow_response(flow_id, session, item=item.to_dict())


@main_bp.route('/flows/<flow_id>/items/<item_id>/fields', methods=['PATCH'])
def edit_item_fields(flow_id, item_id):
    """Keystroke-level edits; applied after the quiet period or on save."""
    session = _flow(flow_id)
    fields = _item_fields(_json_body())
    for field, value in fields.items():
        session.edit_item_field(item_id, field, value)
    return jsonify({'success': True, 'pending': sorted(fields)}), 202


@main_bp.route('/flows/<flow_id>/items/<item_id>', methods=['DELETE'])
def remove_item(flow_id, item_id):
    session = _flow(flow_id)
    session.remove_item(item_id)
    return _flow_response(flow_id, session)


@main_bp.route('/flows/<flow_id>/save', methods=['POST'])
def save_flow(flow_id):
    session = _flow(flow_id)
    data = request.get_json(silent=True) or {}
    session.flush_edits()
    record = _gateway().save(
        session,
        base_title=(data.get('title') or '').strip() or None,
        create_revision=bool(data.get('create_revision')),
    )
    return _flow_response(flow_id, session, saved=_record_dict(record))


@main_bp.route('/flows/<flow_id>/load/<quotation_id>', methods=['POST'])
def load_into_flow(flow_id, quotation_id):
    session = _flow(flow_id)
    _gateway().load(quotation_id, session)
    return _flow_response(flow_id, session)


@main_bp.route('/flows/<flow_id>/reset', methods=['POST'])
def reset_flow(flow_id):
    session = _flow(flow_id)
    session.reset()
    return _flow_response(flow_id, session)


@main_bp.route('/flows/<flow_id>/print', methods=['POST'])
def toggle_print(flow_id):
    session = _flow(flow_id)
    if not session.print_mode:
        problems = session.validation_problems()
        if problems:
            raise ValidationError('Cannot print quotation: ' + '; '.join(problems), problems=problems)
    session.toggle_print_mode()
    return _flow_response(flow_id, session)


@main_bp.route('/flows/<flow_id>/print')
def print_view(flow_id):
    session = _flow(flow_id)
    return render_template('print_quotation.html', doc=build_document(session))
