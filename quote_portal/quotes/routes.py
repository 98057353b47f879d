# quote_portal/quotes/routes.py

from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, make_response, request

from quote_portal import db
from quote_portal.errors import MalformedPayload
from quote_portal.quotes.exports import csv_filename, pdf_filename, render_csv, render_pdf
from quote_portal.quotes.service import (
    export_quotes,
    get_quote,
    get_quotes,
    parse_filters,
    parse_listing,
    submit_quote,
)

bp = Blueprint('quotes', __name__)


def _submission_body():
    """JSON bodies from the API, form fields from the intake form."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            raise MalformedPayload()
        return data
    return request.form.to_dict()


@bp.route('/health')
def health():
    return jsonify(status='UP', timestamp=datetime.now(timezone.utc).isoformat())


@bp.route('/quotes', methods=['POST'])
def create_quote():
    quote = submit_quote(db.session, _submission_body())
    return jsonify(status='success', data={'quote': quote.to_dict()}), 201


@bp.route('/quotes', methods=['GET'])
def list_quotes():
    """
    Filtered, paginated listing.
    Query: state, roofType, page, limit, sortBy, sortOrder.
    """
    listing = parse_listing(
        request.args,
        default_limit=current_app.config['QUOTES_PAGE_SIZE'],
    )
    quotes, pagination = get_quotes(db.session, parse_filters(request.args), **listing)
    return jsonify(
        status='success',
        results=len(quotes),
        data={
            'quotes'    : [q.to_dict() for q in quotes],
            'pagination': pagination,
        },
    )


@bp.route('/quotes/<quote_id>/pdf')
def quote_pdf(quote_id):
    quote = get_quote(db.session, quote_id)
    resp = make_response(render_pdf(quote))
    resp.headers['Content-Disposition'] = f'attachment; filename={pdf_filename(quote)}'
    resp.mimetype = 'application/pdf'
    return resp


@bp.route('/quotes/export/csv')
def quotes_csv():
    """Full filtered set as CSV; same filters as the listing, no paging."""
    quotes = export_quotes(db.session, parse_filters(request.args))
    resp = make_response(render_csv(quotes))
    today = datetime.now(timezone.utc).date()
    resp.headers['Content-Disposition'] = f'attachment; filename={csv_filename(today)}'
    resp.mimetype = 'text/csv'
    return resp
