# quote_portal/quotes/service.py

"""Submission pipeline and filtered retrieval for quotes.

Every function takes the SQLAlchemy session it should use; nothing here
reaches for ``db.session`` on its own.
"""

import logging
import math
import re
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from quote_portal.errors import (
    MalformedIdentifier,
    MalformedPayload,
    NotFound,
    StoreFailure,
    ValidationFailure,
)
from quote_portal.models import Quote
from quote_portal.validation import (
    FREE_TEXT_FIELDS,
    sanitize_text,
    to_date,
    to_number,
    validate_quote,
)

log = logging.getLogger(__name__)

QUOTE_ID_RE = re.compile(r'[0-9a-f]{32}')

SORT_COLUMNS = {
    'createdAt'     : Quote.created_at,
    'updatedAt'     : Quote.updated_at,
    'projectDate'   : Quote.project_date,
    'roofSize'      : Quote.roof_size,
    'contractorName': Quote.contractor_name,
    'company'       : Quote.company,
    'projectCity'   : Quote.project_city,
    'projectState'  : Quote.project_state,
    'roofType'      : Quote.roof_type,
}
DEFAULT_SORT_BY = 'createdAt'
DEFAULT_SORT_ORDER = 'desc'


# --------------------------------------------------------------------------
# Submission
# --------------------------------------------------------------------------

def clean_submission(raw: Mapping) -> dict:
    """Sanitize free text and trim the enumerated fields of ``raw``."""
    data = dict(raw)
    for field in FREE_TEXT_FIELDS:
        data[field] = sanitize_text(data.get(field))
    for field in ('roofType', 'projectState'):
        value = data.get(field)
        if isinstance(value, str):
            data[field] = value.strip()
    return data


def submit_quote(session, raw, now: datetime | None = None) -> Quote:
    """Validate ``raw`` and persist it as a new quote.

    Raises ``ValidationFailure`` listing every bad field, or ``StoreFailure``
    if the single commit fails.  Nothing is retried.
    """
    if not isinstance(raw, Mapping):
        raise MalformedPayload('Request body must be a JSON object')

    now = now or datetime.now(timezone.utc)
    data = clean_submission(raw)
    errors = validate_quote(data, today=now.date())
    if errors:
        log.info('quote rejected: %s', ', '.join(e['field'] for e in errors))
        raise ValidationFailure(errors)

    quote = Quote(
        id              = uuid.uuid4().hex,
        contractor_name = data['contractorName'],
        company         = data['company'],
        roof_size       = to_number(data['roofSize']),
        roof_type       = data['roofType'],
        project_city    = data['projectCity'],
        project_state   = data['projectState'].upper(),
        project_date    = to_date(data['projectDate']),
        created_at      = now,
        updated_at      = now,
    )
    session.add(quote)
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        log.error('failed to store quote: %s', exc)
        raise StoreFailure() from exc
    log.info('quote %s stored (%s, %s)', quote.id, quote.project_state, quote.roof_type)
    return quote


# --------------------------------------------------------------------------
# Retrieval
# --------------------------------------------------------------------------

def parse_filters(args: Mapping) -> dict:
    """Pull the ``state``/``roofType`` filters out of query args.

    Blank values count as absent; the state code is upper-cased.
    """
    state = (args.get('state') or '').strip().upper()
    roof_type = (args.get('roofType') or '').strip()
    return {'state': state or None, 'roof_type': roof_type or None}


def filter_criteria(filters: Mapping) -> list:
    """Conjunctive predicate for the supplied filters only."""
    criteria = []
    if filters.get('state'):
        criteria.append(Quote.project_state == filters['state'].upper())
    if filters.get('roof_type'):
        criteria.append(Quote.roof_type == filters['roof_type'])
    return criteria


def _positive_int(args, name, default):
    raw = args.get(name)
    if raw is None or str(raw).strip() == '':
        return default, None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None, f'{name} must be a positive integer'
    if value < 1:
        return None, f'{name} must be a positive integer'
    return value, None


def parse_listing(args: Mapping, default_limit: int = 10) -> dict:
    """Parse paging and sorting args, rejecting anything unusable."""
    errors = []
    page, err = _positive_int(args, 'page', 1)
    if err:
        errors.append({'field': 'page', 'message': err})
    limit, err = _positive_int(args, 'limit', default_limit)
    if err:
        errors.append({'field': 'limit', 'message': err})

    sort_by = (args.get('sortBy') or DEFAULT_SORT_BY).strip()
    if sort_by not in SORT_COLUMNS:
        errors.append({'field': 'sortBy',
                       'message': 'sortBy must be one of ' + ', '.join(SORT_COLUMNS)})
    sort_order = (args.get('sortOrder') or DEFAULT_SORT_ORDER).strip().lower()
    if sort_order not in ('asc', 'desc'):
        errors.append({'field': 'sortOrder', 'message': 'sortOrder must be asc or desc'})

    if errors:
        raise ValidationFailure(errors, 'Invalid query parameters')
    return {'page': page, 'limit': limit, 'sort_by': sort_by, 'sort_order': sort_order}


def _ordering(sort_by, sort_order):
    column = SORT_COLUMNS[sort_by]
    if sort_order == 'asc':
        return column.asc(), Quote.id.asc()
    return column.desc(), Quote.id.desc()


def get_quotes(session, filters, page=1, limit=10,
               sort_by=DEFAULT_SORT_BY, sort_order=DEFAULT_SORT_ORDER):
    """Return one page of matching quotes plus pagination metadata."""
    criteria = filter_criteria(filters)
    query = session.query(Quote).filter(*criteria)
    total = query.count()
    offset = (page - 1) * limit
    if offset >= total:
        quotes = []
    else:
        # offset < total keeps both bound values within the row count
        quotes = (
            query.order_by(*_ordering(sort_by, sort_order))
                 .offset(offset)
                 .limit(min(limit, total - offset))
                 .all()
        )
    pagination = {
        'currentPage': page,
        'totalPages' : math.ceil(total / limit),
        'totalQuotes': total,
        'hasMore'    : page * limit < total,
    }
    return quotes, pagination


def export_quotes(session, filters) -> list:
    """All quotes matching ``filters`` in default order, unpaginated."""
    return (
        session.query(Quote)
               .filter(*filter_criteria(filters))
               .order_by(*_ordering(DEFAULT_SORT_BY, DEFAULT_SORT_ORDER))
               .all()
    )


def get_quote(session, quote_id: str) -> Quote:
    if not isinstance(quote_id, str) or not QUOTE_ID_RE.fullmatch(quote_id):
        raise MalformedIdentifier()
    quote = session.get(Quote, quote_id)
    if quote is None:
        raise NotFound()
    return quote
