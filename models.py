from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import text
from datetime import datetime

db = SQLAlchemy()

# ----------------------
# Demoday: one showcase event
# ----------------------
class Demoday(db.Model):
    __tablename__ = 'demodays'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    created_by_id = db.Column(db.Integer, nullable=True)
    active = db.Column(db.Boolean, default=False, nullable=False)
    status = db.Column(db.String(20), default='active', nullable=False)  # active / finished
    max_finalists = db.Column(db.Integer, default=10, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    phases = db.relationship('DemodayPhase', back_populates='demoday', lazy=True,
                             order_by='DemodayPhase.phase_number',
                             cascade='all, delete-orphan')
    categories = db.relationship('Category', back_populates='demoday', lazy=True,
                                 order_by='Category.id',
                                 cascade='all, delete-orphan')
    criteria = db.relationship('EvaluationCriterion', back_populates='demoday', lazy=True,
                               order_by='EvaluationCriterion.id',
                               cascade='all, delete-orphan')
    submissions = db.relationship('Submission', back_populates='demoday', lazy=True,
                                  cascade='all, delete-orphan')
    votes = db.relationship('Vote', back_populates='demoday', lazy=True,
                            cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'active': self.active,
            'status': self.status,
            'max_finalists': self.max_finalists,
        }


# ----------------------
# Phases: 1 submission, 2 screening, 3 popular vote, 4 final vote
# ----------------------
class DemodayPhase(db.Model):
    __tablename__ = 'demoday_phases'

    id = db.Column(db.Integer, primary_key=True)
    demoday_id = db.Column(db.Integer, db.ForeignKey('demodays.id'), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    phase_number = db.Column(db.Integer, nullable=False)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now)

    demoday = db.relationship('Demoday', back_populates='phases')

    __table_args__ = (
        db.UniqueConstraint('demoday_id', 'phase_number', name='uix_phase_number'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'phase_number': self.phase_number,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
        }


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    demoday_id = db.Column(db.Integer, db.ForeignKey('demodays.id'), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    max_finalists = db.Column(db.Integer, default=5, nullable=False)

    demoday = db.relationship('Demoday', back_populates='categories')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'max_finalists': self.max_finalists,
        }


# ----------------------
# Projects and their submission to a demoday
# ----------------------
class Project(db.Model):
    __tablename__ = 'projects'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    user_id = db.Column(db.Integer, nullable=False)  # owner, from the auth layer
    type = db.Column(db.String(50), nullable=True)   # Disciplina / IC / TCC / Mestrado / Doutorado
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True)
    authors = db.Column(db.Text, nullable=True)
    advisor = db.Column(db.String(120), nullable=True)
    contact_email = db.Column(db.String(255), nullable=True)
    contact_phone = db.Column(db.String(50), nullable=True)
    video_url = db.Column(db.String(500), nullable=True)
    repository_url = db.Column(db.String(500), nullable=True)
    development_year = db.Column(db.String(10), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    category = db.relationship('Category')
    submissions = db.relationship('Submission', back_populates='project', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'user_id': self.user_id,
            'type': self.type,
            'category_id': self.category_id,
            'authors': self.authors,
            'advisor': self.advisor,
            'video_url': self.video_url,
            'repository_url': self.repository_url,
            'development_year': self.development_year,
        }


class Submission(db.Model):
    __tablename__ = 'submissions'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False)
    demoday_id = db.Column(db.Integer, db.ForeignKey('demodays.id'), nullable=False)
    status = db.Column(db.String(20), default='submitted', nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now)

    project = db.relationship('Project', back_populates='submissions')
    demoday = db.relationship('Demoday', back_populates='submissions')
    evaluations = db.relationship('Evaluation', back_populates='submission', lazy=True,
                                  cascade='all, delete-orphan')

    __table_args__ = (
        db.UniqueConstraint('project_id', 'demoday_id', name='uix_submission_unique'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'demoday_id': self.demoday_id,
            'status': self.status,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


# ----------------------
# Votes: popular is unique per (voter, project), final once per voter and demoday
# ----------------------
class Vote(db.Model):
    __tablename__ = 'votes'

    id = db.Column(db.Integer, primary_key=True)
    voter_id = db.Column(db.Integer, nullable=False)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False)
    demoday_id = db.Column(db.Integer, db.ForeignKey('demodays.id'), nullable=False)
    voter_role = db.Column(db.String(20), nullable=False)
    vote_phase = db.Column(db.String(10), nullable=False, default='popular')
    weight = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=datetime.now)

    demoday = db.relationship('Demoday', back_populates='votes')

    __table_args__ = (
        db.UniqueConstraint('voter_id', 'project_id', 'vote_phase', name='uix_vote_unique'),
        db.Index(
            'uix_final_vote_once', 'voter_id', 'demoday_id',
            unique=True,
            sqlite_where=text("vote_phase = 'final'"),
            postgresql_where=text("vote_phase = 'final'"),
        ),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'voter_id': self.voter_id,
            'project_id': self.project_id,
            'demoday_id': self.demoday_id,
            'vote_phase': self.vote_phase,
            'weight': self.weight,
        }


# ----------------------
# Screening
# ----------------------
class EvaluationCriterion(db.Model):
    __tablename__ = 'evaluation_criteria'

    id = db.Column(db.Integer, primary_key=True)
    demoday_id = db.Column(db.Integer, db.ForeignKey('demodays.id'), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)

    demoday = db.relationship('Demoday', back_populates='criteria')

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'description': self.description}


class Evaluation(db.Model):
    __tablename__ = 'evaluations'

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(db.Integer, db.ForeignKey('submissions.id'), nullable=False)
    reviewer_id = db.Column(db.Integer, nullable=False)
    approval_percentage = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now)

    submission = db.relationship('Submission', back_populates='evaluations')
    scores = db.relationship('EvaluationScore', back_populates='evaluation', lazy=True,
                             cascade='all, delete-orphan')

    __table_args__ = (
        db.UniqueConstraint('submission_id', 'reviewer_id', name='uix_evaluation_unique'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'submission_id': self.submission_id,
            'reviewer_id': self.reviewer_id,
            'approval_percentage': self.approval_percentage,
            'scores': [
                {'criterion_id': s.criterion_id, 'approved': s.approved, 'comment': s.comment}
                for s in self.scores
            ],
        }


class EvaluationScore(db.Model):
    __tablename__ = 'evaluation_scores'

    id = db.Column(db.Integer, primary_key=True)
    evaluation_id = db.Column(db.Integer, db.ForeignKey('evaluations.id'), nullable=False)
    criterion_id = db.Column(db.Integer, nullable=False)
    approved = db.Column(db.Boolean, nullable=False)
    comment = db.Column(db.Text, nullable=True)

    evaluation = db.relationship('Evaluation', back_populates='scores')


# ----------------------
# Operation log
# ----------------------
class OperationLog(db.Model):
    __tablename__ = 'operation_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_type = db.Column(db.String(20))  # admin / professor / student_ufba / student_external / guest
    user_id = db.Column(db.Integer, nullable=True)
    action = db.Column(db.String(255))
    timestamp = db.Column(db.DateTime, default=datetime.now)
    ip_address = db.Column(db.String(50))

    def __repr__(self):
        return f"<Log {self.user_type}-{self.user_id}: {self.action}>"
