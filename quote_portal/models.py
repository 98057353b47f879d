from datetime import timezone

from sqlalchemy.orm import validates

from quote_portal import db
from quote_portal.errors import ValidationFailure
from quote_portal import validation as rules

# model attribute -> JSON field
FIELD_NAMES = {
    'contractor_name': 'contractorName',
    'company': 'company',
    'roof_size': 'roofSize',
    'roof_type': 'roofType',
    'project_city': 'projectCity',
    'project_state': 'projectState',
    'project_date': 'projectDate',
}

_ROOF_TYPES_SQL = ', '.join(f"'{t}'" for t in rules.ROOF_TYPES)


def _iso(ts):
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.isoformat()


class Quote(db.Model):
    __tablename__ = 'quote'
    id              = db.Column(db.String(32), primary_key=True)
    contractor_name = db.Column(db.String(100), nullable=False)
    company         = db.Column(db.String(100), nullable=False)
    roof_size       = db.Column(db.Float, nullable=False)
    roof_type       = db.Column(db.String(16), nullable=False)
    project_city    = db.Column(db.String(100), nullable=False)
    project_state   = db.Column(db.String(2), nullable=False)
    project_date    = db.Column(db.Date, nullable=False)
    created_at      = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at      = db.Column(db.DateTime(timezone=True), nullable=False)

    __table_args__ = (
        db.CheckConstraint(
            f'roof_size > 0 AND roof_size <= {rules.MAX_ROOF_SIZE}',
            name='ck_quote_roof_size',
        ),
        db.CheckConstraint(f'roof_type IN ({_ROOF_TYPES_SQL})', name='ck_quote_roof_type'),
        db.CheckConstraint('length(project_state) = 2', name='ck_quote_project_state'),
        db.CheckConstraint(
            'length(contractor_name) BETWEEN 2 AND 100', name='ck_quote_contractor_name'
        ),
        db.CheckConstraint('length(company) BETWEEN 2 AND 100', name='ck_quote_company'),
        db.Index('ix_quote_state_roof_type', 'project_state', 'roof_type'),
    )

    @validates('contractor_name', 'company', 'roof_size', 'roof_type',
               'project_city', 'project_state')
    def _check_rule(self, key, value):
        """Re-apply the submission rules at the persistence layer.

        The project date window is only checked at submission time, so it is
        not part of this set.
        """
        field = FIELD_NAMES[key]
        message = rules.check_field(field, value)
        if message:
            raise ValidationFailure([{'field': field, 'message': message}])
        if key == 'project_state':
            return value.strip().upper()
        if key == 'roof_size':
            return rules.to_number(value)
        return value.strip() if isinstance(value, str) else value

    @validates('project_date')
    def _check_date(self, key, value):
        day = rules.to_date(value)
        if day is None:
            raise ValidationFailure([{'field': 'projectDate',
                                      'message': 'Project date must be a valid date'}])
        return day

    @property
    def location(self):
        return f'{self.project_city}, {self.project_state}'

    def to_dict(self):
        return {
            'id'            : self.id,
            'contractorName': self.contractor_name,
            'company'       : self.company,
            'roofSize'      : self.roof_size,
            'roofType'      : self.roof_type,
            'projectCity'   : self.project_city,
            'projectState'  : self.project_state,
            'projectDate'   : self.project_date.isoformat(),
            'location'      : self.location,
            'createdAt'     : _iso(self.created_at),
            'updatedAt'     : _iso(self.updated_at),
        }


db.Index('ix_quote_created_at', Quote.created_at.desc())
