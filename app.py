import os
from datetime import date
from functools import wraps

import structlog
from flask import Flask, render_template, request, redirect, url_for, session, jsonify, flash, current_app
from sqlalchemy.exc import SQLAlchemyError

from ledger import reconcile, services
from ledger.auth import SessionTokens, authenticate, register_user
from ledger.errors import LedgerError, UserExists, ValidationError
from ledger.log import configure_logging
from ml.recommender import generate_recommendations, predict_next_month_spend
from models import db

logger = structlog.get_logger(__name__)

def create_app():
    app = Flask(__name__, template_folder='templates')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///budget.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['SESSION_MAX_AGE'] = int(os.environ.get('SESSION_MAX_AGE', 86400))
    app.config['INCOME_SCOPE'] = os.environ.get('INCOME_SCOPE', reconcile.GLOBAL)
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')
    if app.config['INCOME_SCOPE'] not in reconcile.SCOPES:
        raise RuntimeError(f"INCOME_SCOPE must be one of {', '.join(reconcile.SCOPES)}")
    configure_logging(app.config['LOG_LEVEL'])
    db.init_app(app)
    with app.app_context():
        db.create_all()
    return app

app = create_app()

# ---------------------- Auth Helpers ----------------------
def session_tokens():
    return SessionTokens(current_app.config['SECRET_KEY'], current_app.config['SESSION_MAX_AGE'])

def current_identity():
    return session_tokens().validate(session.get('token'))

def start_session(username):
    session.clear()
    session['token'] = session_tokens().issue(username)

def login_required(view_func):
    """Pass the authenticated Identity as the view's first argument, or send the caller to the entry page."""
    @wraps(view_func)
    def wrapped(*args, **kwargs):
        identity = current_identity()
        if identity is None:
            return redirect(url_for('index'))
        return view_func(identity, *args, **kwargs)
    return wrapped

def render_dashboard(identity, active_tab):
    return render_template('budget.html', active_tab=active_tab, **services.dashboard(identity))

# ---------------------- Error Handlers ----------------------
@app.errorhandler(LedgerError)
def handle_ledger_error(exc):
    if exc.status_code >= 500:
        logger.error('request_failed', path=request.path, error=exc.message, exc_info=exc)
    else:
        logger.info('request_rejected', path=request.path, status=exc.status_code, error=exc.message)
    return exc.message, exc.status_code, {'Content-Type': 'text/plain; charset=utf-8'}

@app.errorhandler(SQLAlchemyError)
def handle_store_failure(exc):
    db.session.rollback()
    logger.exception('store_failure', path=request.path)
    return 'Error processing request', 500, {'Content-Type': 'text/plain; charset=utf-8'}

# ---------------------- Routes: Auth ----------------------
@app.route('/')
def index():
    return render_template('index.html')

@app.route('/register', methods=['POST'])
def register():
    username = request.form.get('username', '')
    try:
        user = register_user(username, request.form.get('password', ''))
    except (UserExists, ValidationError) as exc:
        flash(exc.message, 'error')
        return redirect(url_for('index'))
    start_session(user.username)
    return redirect(url_for('dashboard'), code=307)

@app.route('/login', methods=['POST'])
def login():
    user = authenticate(request.form.get('username', ''), request.form.get('password', ''))
    if not user:
        flash('Invalid credentials.', 'error')
        return redirect(url_for('index'))
    start_session(user.username)
    logger.info('user_logged_in', username=user.username)
    return redirect(url_for('dashboard'), code=307)

@app.route('/logout')
def logout():
    session.clear()
    return redirect(url_for('index'))

# ---------------------- Routes: Pages ----------------------
@app.route('/todo', methods=['GET', 'POST'])
@login_required
def dashboard(identity):
    return render_dashboard(identity, 'goal-tracking')

@app.route('/add')
@login_required
def add_page(identity):
    return render_template('add.html', username=identity.username, current_year=date.today().year)

# ---------------------- Routes: Transactions ----------------------
@app.route('/add-transaction', methods=['POST'])
@login_required
def add_transaction(identity):
    form = request.form
    services.add_transaction(
        identity,
        f_ins=form.get('f_ins'),
        product=form.get('product'),
        price=form.get('price'),
        date=form.get('date'),
        category=form.get('category'),
    )
    return render_dashboard(identity, 'transactions')

@app.route('/delete-transaction', methods=['POST'])
@login_required
def delete_transaction(identity):
    services.delete_transaction(identity, request.form.get('transaction_id'))
    return render_dashboard(identity, 'transactions')

# ---------------------- Routes: Budgets ----------------------
@app.route('/add-budget', methods=['POST'])
@login_required
def add_budget(identity):
    form = request.form
    services.add_budget(identity, form.get('type'), form.get('amount'), form.get('month'), form.get('year'))
    return render_dashboard(identity, 'budget-planning')

@app.route('/delete-budget', methods=['POST'])
@login_required
def delete_budget(identity):
    services.delete_budget(identity, request.form.get('budget_id'))
    return render_dashboard(identity, 'budget-planning')

# ---------------------- Routes: Incomes ----------------------
@app.route('/add-income', methods=['POST'])
@login_required
def add_income(identity):
    form = request.form
    services.add_income(identity, form.get('amount'), form.get('month'), form.get('year'))
    return render_dashboard(identity, 'goal-tracking')

@app.route('/delete-income', methods=['POST'])
@login_required
def delete_income(identity):
    services.delete_income(identity, request.form.get('income_id'))
    return render_dashboard(identity, 'goal-tracking')

# ---------------------- API Endpoints ----------------------
@app.route('/api/recommendations')
@login_required
def api_recommendations(identity):
    recs = generate_recommendations(identity.username)
    pred = predict_next_month_spend(identity.username)
    return jsonify({'recommendations': recs, 'next_month_spend_prediction': pred})


# ---------------------- Run App ----------------------
if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=True)
