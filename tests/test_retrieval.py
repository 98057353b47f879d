import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quote_portal import create_app, db
from quote_portal.errors import MalformedIdentifier, NotFound, ValidationFailure
from quote_portal.quotes.service import (
    export_quotes,
    filter_criteria,
    get_quote,
    get_quotes,
    parse_filters,
    parse_listing,
    submit_quote,
)

BASE = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

SEED = [
    ('Alice Adams', 'TX', 'Metal', 1000),
    ('Bob Brown', 'TX', 'TPO', 2000),
    ('Carol Clark', 'CA', 'Metal', 3000),
    ('Dan Davis', 'TX', 'Metal', 4000),
    ('Eve Evans', 'NY', 'Foam', 5000),
]


def setup_app():
    app = create_app('testing')
    with app.app_context():
        db.drop_all()
        db.create_all()
        for i, (name, state, roof, size) in enumerate(SEED):
            submit_quote(db.session, {
                'contractorName': name,
                'company': f'{name} Roofing',
                'roofSize': size,
                'roofType': roof,
                'projectCity': 'Springfield',
                'projectState': state,
                'projectDate': '2027-03-01',
            }, now=BASE + timedelta(minutes=i))
    return app


def names(quotes):
    return [q.contractor_name for q in quotes]


def test_parse_filters_normalises_state():
    assert parse_filters({'state': ' ca ', 'roofType': 'Metal'}) == {'state': 'CA', 'roof_type': 'Metal'}
    assert parse_filters({'state': '', 'roofType': '  '}) == {'state': None, 'roof_type': None}
    assert filter_criteria({'state': None, 'roof_type': None}) == []
    assert len(filter_criteria({'state': 'TX', 'roof_type': 'Metal'})) == 2


def test_default_listing_is_newest_first():
    app = setup_app()
    with app.app_context():
        quotes, pagination = get_quotes(db.session, parse_filters({}))
        assert names(quotes) == ['Eve Evans', 'Dan Davis', 'Carol Clark', 'Bob Brown', 'Alice Adams']
        assert pagination == {'currentPage': 1, 'totalPages': 1, 'totalQuotes': 5, 'hasMore': False}


def test_filters_are_anded():
    app = setup_app()
    with app.app_context():
        quotes, pagination = get_quotes(db.session, parse_filters({'state': 'TX', 'roofType': 'Metal'}))
        assert names(quotes) == ['Dan Davis', 'Alice Adams']
        assert pagination['totalQuotes'] == 2


def test_state_filter_is_case_insensitive():
    app = setup_app()
    with app.app_context():
        lower, _ = get_quotes(db.session, parse_filters({'state': 'tx'}))
        upper, _ = get_quotes(db.session, parse_filters({'state': 'TX'}))
        assert [q.id for q in lower] == [q.id for q in upper]
        assert len(upper) == 3


def test_roof_type_filter_is_exact():
    app = setup_app()
    with app.app_context():
        quotes, _ = get_quotes(db.session, parse_filters({'roofType': 'metal'}))
        assert quotes == []


def test_pagination_uses_total_count():
    app = setup_app()
    with app.app_context():
        filters = parse_filters({})
        page1, meta1 = get_quotes(db.session, filters, page=1, limit=2)
        page3, meta3 = get_quotes(db.session, filters, page=3, limit=2)
        assert len(page1) == 2
        assert meta1 == {'currentPage': 1, 'totalPages': 3, 'totalQuotes': 5, 'hasMore': True}
        assert names(page3) == ['Alice Adams']
        assert meta3['hasMore'] is False


def test_page_beyond_end_is_empty():
    app = setup_app()
    with app.app_context():
        quotes, meta = get_quotes(db.session, parse_filters({}), page=9, limit=2)
        assert quotes == []
        assert meta['hasMore'] is False
        assert meta['totalPages'] == 3


def test_sorting():
    app = setup_app()
    with app.app_context():
        quotes, _ = get_quotes(db.session, parse_filters({}), sort_by='roofSize', sort_order='asc')
        assert [q.roof_size for q in quotes] == [1000, 2000, 3000, 4000, 5000]


def test_huge_page_and_limit_values():
    app = setup_app()
    with app.app_context():
        huge = 10 ** 20
        quotes, meta = get_quotes(db.session, parse_filters({}), page=huge, limit=2)
        assert quotes == []
        assert meta['currentPage'] == huge
        assert meta['hasMore'] is False
        quotes, meta = get_quotes(db.session, parse_filters({}), page=1, limit=huge)
        assert len(quotes) == 5
        assert meta['totalPages'] == 1
        assert meta['hasMore'] is False


def test_parse_listing_defaults_and_errors():
    assert parse_listing({}) == {'page': 1, 'limit': 10, 'sort_by': 'createdAt', 'sort_order': 'desc'}
    assert parse_listing({'sortOrder': 'ASC', 'limit': '5'})['sort_order'] == 'asc'
    with pytest.raises(ValidationFailure) as exc:
        parse_listing({'page': '0', 'limit': 'ten', 'sortBy': 'password', 'sortOrder': 'up'})
    assert [e['field'] for e in exc.value.errors] == ['page', 'limit', 'sortBy', 'sortOrder']
    assert parse_listing({'limit': '500'})['limit'] == 500
    with pytest.raises(ValidationFailure):
        parse_listing({'limit': '-3'})


def test_export_returns_full_filtered_set():
    app = setup_app()
    with app.app_context():
        exported = export_quotes(db.session, parse_filters({'state': 'tx'}))
        listed, _ = get_quotes(db.session, parse_filters({'state': 'TX'}), limit=100)
        assert {q.id for q in exported} == {q.id for q in listed}
        assert len(exported) == 3


def test_get_quote_lookup():
    app = setup_app()
    with app.app_context():
        quotes, _ = get_quotes(db.session, parse_filters({}))
        assert get_quote(db.session, quotes[0].id).id == quotes[0].id
        with pytest.raises(NotFound):
            get_quote(db.session, '0' * 32)
        with pytest.raises(MalformedIdentifier):
            get_quote(db.session, 'not-an-id')


def test_stored_dates_are_not_revalidated_on_read():
    app = setup_app()
    with app.app_context():
        quotes, _ = get_quotes(db.session, parse_filters({}))
        quotes[0].project_date = '2001-01-01'
        db.session.commit()
        again, _ = get_quotes(db.session, parse_filters({}))
        assert len(again) == 5
