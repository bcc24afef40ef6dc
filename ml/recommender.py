import pandas as pd
from sklearn.linear_model import LinearRegression
from models import Budget, Transaction, db

NEAR_LIMIT = 0.8

def _query_user_df(username):
    # Build a DataFrame of the user's transactions
    rows = db.session.query(Transaction).filter(Transaction.username == username).all()
    if not rows:
        return pd.DataFrame(columns=['date', 'price', 'category', 'f_ins'])
    data = [{
        'date': r.date,
        'price': r.price,
        'category': r.category,
        'f_ins': r.f_ins or 'Unknown'
    } for r in rows]
    df = pd.DataFrame(data)
    df['date'] = pd.to_datetime(df['date'])
    return df

def _monthly_spend(df):
    spend = df.copy()
    spend['ym'] = spend['date'].dt.to_period('M').astype(str)
    return spend.groupby('ym')['price'].sum().reset_index()

def predict_next_month_spend(username):
    df = _query_user_df(username)
    if df.empty:
        return 0.0
    m = _monthly_spend(df)
    if len(m) < 2:
        # Not enough data to fit
        return float(m['price'].iloc[-1])
    # Turn months into an integer index
    m['idx'] = range(1, len(m)+1)
    X = m[['idx']].values
    y = m['price'].values
    model = LinearRegression().fit(X, y)
    next_idx = m['idx'].max() + 1
    pred = float(model.predict([[next_idx]])[0])
    return max(pred, 0.0)

def budget_warnings(budgets):
    warnings = []
    for b in budgets:
        label = f'"{b.type}" ({b.month:02d}/{b.year})'
        if b.a_left < 0:
            warnings.append(f'Budget {label} is overspent by {-b.a_left:.2f}.')
        elif b.amount > 0 and b.a_used >= NEAR_LIMIT * b.amount:
            warnings.append(f'Budget {label} has used {b.a_used / b.amount * 100:.0f}% of its allotment.')
    return warnings

def generate_recommendations(username):
    budgets = Budget.query.filter_by(username=username).order_by(Budget.year, Budget.month).all()
    recs = budget_warnings(budgets)
    df = _query_user_df(username)
    if df.empty:
        recs.append('Add transactions against your budgets to get spending insights.')
        return recs
    # Top spend categories and institutions
    cat = df.groupby('category')['price'].sum().sort_values(ascending=False)
    for c, v in cat.head(3).items():
        recs.append(f'High spend in "{c}" category: {v:.2f}. Consider lowering next month\'s budget for it.')
    fins = df.groupby('f_ins')['price'].sum().sort_values(ascending=False)
    top_fins, top_total = next(iter(fins.items()))
    recs.append(f'Most spending goes through "{top_fins}": {top_total:.2f}.')
    # Volatility check: if last month higher than prior avg
    monthly = _monthly_spend(df)['price']
    if len(monthly) >= 2:
        last = monthly.iloc[-1]
        prev_avg = monthly.iloc[:-1].mean()
        if last > 1.2 * prev_avg:
            recs.append("Last month's spending exceeded your previous average by 20%+. Review discretionary categories.")
    pred = predict_next_month_spend(username)
    recs.append(f'Predicted next month spend: {pred:.2f}.')
    return recs
