"""
Strady - Streamlit Application
Stock and option position tracker with payoff simulation, strategy view and
EUR portfolio risk summary.
"""

import streamlit as st
import pandas as pd
import logging
from datetime import date
from dotenv import load_dotenv

from config import get_settings
from db_engine import init_db
from models import Transaction, AssetType, Action, Currency, OPTION_TYPES
from repositories import TransactionRepository
from services.common import format_number
from services.fx import FxRateService
from services.market_data import MarketDataService
from services.portfolio import PortfolioService
from services.portfolio_io import (
    TransactionImportError, export_transactions, import_transactions, export_report
)
from services.simulator import PayoffCurve, default_price_range, simulate, zoom_range
from services.strategy_analyst import StrategyAnalyst
from services.transactions import (
    TransactionService, InvalidTransactionError, default_fees, third_friday_of_next_month
)
from services.valuation import reference_price

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=get_settings().log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Configure Streamlit page
st.set_page_config(
    page_title="Strady - Options Strategy Tracker",
    page_icon="📈",
    layout="wide"
)

# Initialize database
init_db()

repository = TransactionRepository()
fx_service = FxRateService()
transaction_service = TransactionService(repository)
portfolio_service = PortfolioService(repository, fx_service)

ZOOM_IN = 0.8
ZOOM_OUT = 1.25


# ==================== SESSION STATE ====================
if "zoom_windows" not in st.session_state:
    st.session_state.zoom_windows = {}

if "strategy_analysis" not in st.session_state:
    st.session_state.strategy_analysis = {}

if "prefill" not in st.session_state:
    st.session_state.prefill = {}


# ==================== HELPER FUNCTIONS ====================
def curve_frame(curve: PayoffCurve) -> pd.DataFrame:
    """Payoff curve as a DataFrame indexed by price, for st.line_chart."""
    df = pd.DataFrame({'Price': curve.prices, 'P&L': curve.pnl})
    return df.set_index('Price')


def render_curve_stats(curve: PayoffCurve, currency: str):
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Max Profit (in range)", format_number(curve.max_profit, currency))
    with col2:
        st.metric("Max Loss (in range)", format_number(curve.max_loss, currency))
    with col3:
        crossings = ", ".join(format_number(b) for b in curve.breakevens) or "None"
        st.metric("Break-even", crossings)


def render_zoom_controls(key: str, default_window, center: float):
    """Zoom buttons around a fixed center; the window is kept in session state."""
    window = st.session_state.zoom_windows.get(key, default_window)
    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("🔍 Zoom In", key=f"zoom_in_{key}", use_container_width=True):
            window = zoom_range(window[0], window[1], center, ZOOM_IN)
    with col2:
        if st.button("🔎 Zoom Out", key=f"zoom_out_{key}", use_container_width=True):
            window = zoom_range(window[0], window[1], center, ZOOM_OUT)
    with col3:
        if st.button("↺ Reset", key=f"zoom_reset_{key}", use_container_width=True):
            window = default_window
    st.session_state.zoom_windows[key] = window
    return window


# ==================== SIDEBAR ====================
def render_sidebar():
    """Render sidebar with FX rates and import/export."""
    st.sidebar.title("⚙️ Settings")

    st.sidebar.subheader("💱 FX Rates (EUR base)")
    rates = fx_service.get_rates()
    if rates:
        for pair, rate in rates.rates.items():
            stale = " (cached)" if pair in rates.stale_pairs else ""
            st.sidebar.text(f"{pair}: {rate:.4f}{stale}")
    else:
        st.sidebar.warning("⚠️ FX rates unavailable; amounts are not converted")
    if st.sidebar.button("🔄 Refresh Rates", use_container_width=True):
        refreshed = fx_service.refresh()
        st.sidebar.info(f"Refreshed {refreshed} pairs")
        st.rerun()

    st.sidebar.markdown("---")
    st.sidebar.subheader("📦 Import / Export")

    st.sidebar.download_button(
        label="📥 Export Transactions",
        data=export_transactions(repository.load()),
        file_name=f"transactions_{date.today().isoformat()}.json",
        mime="application/json",
        use_container_width=True
    )

    uploaded = st.sidebar.file_uploader("Import Transactions", type=["json"])
    if uploaded is not None and st.sidebar.button("📤 Import", use_container_width=True):
        try:
            result = import_transactions(uploaded.getvalue().decode("utf-8"), repository)
            st.sidebar.success(f"✅ Imported: {result['added']} added, {result['replaced']} replaced")
            st.rerun()
        except TransactionImportError as e:
            st.sidebar.error(f"❌ Import failed: {e}")

    confirm_clear = st.sidebar.checkbox("I want to delete every transaction")
    if st.sidebar.button("🧹 Clear All Data", disabled=not confirm_clear, use_container_width=True):
        cleared = transaction_service.clear_all()
        st.session_state.zoom_windows = {}
        st.session_state.strategy_analysis = {}
        st.session_state.prefill = {}
        st.sidebar.success(f"✅ Cleared {cleared} transactions")
        st.rerun()

    st.sidebar.markdown("---")
    settings = get_settings()
    llm_status = "✅ Cloud" if settings.is_openai_configured else f"🖥️ Local ({settings.local_model})"
    st.sidebar.caption(f"AI explainer: {llm_status}")


# ==================== MAIN CONTENT ====================
def render_portfolio_summary(dashboard: dict):
    """Render portfolio totals in EUR."""
    st.subheader("📊 Portfolio Summary")

    if not dashboard['transactions']:
        st.info("No transactions yet. Go to 'Add / Edit' to record one!")
        return

    portfolio = dashboard['portfolioMetrics']
    total = portfolio['total']
    currency = portfolio['currency']

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Invested", format_number(total['investedAmount'], currency))
    with col2:
        st.metric("Income", format_number(total['premiumIncome'] + total['realizedIncome'], currency))
    with col3:
        st.metric("Risk Exposure", total['riskExposure'].format(currency))
    with col4:
        ratio = portfolio['riskRewardRatio']
        st.metric("Risk / Reward", f"{ratio:.2f}" if ratio is not None else "N/A")

    st.dataframe(PortfolioService.categories_frame(dashboard), use_container_width=True, hide_index=True)

    st.download_button(
        label="📥 Download Report",
        data=export_report(dashboard),
        file_name=f"strady_report_{date.today().isoformat()}.json",
        mime="application/json"
    )


def render_transaction_list(dashboard: dict):
    """Render transactions with their metrics and delete controls."""
    st.subheader("📜 Transactions")

    df = PortfolioService.positions_frame(dashboard)
    if df.empty:
        st.info("No transactions recorded.")
        return

    st.dataframe(df.drop(columns=['id']), use_container_width=True, hide_index=True)

    labels = {row['id']: f"{row['Action']} {row['Quantity']:g} {row['Symbol']} ({row['Type']})"
              for _, row in df.iterrows()}
    col1, col2 = st.columns([3, 1])
    with col1:
        selected = st.selectbox("Transaction", options=list(labels), format_func=labels.get,
                                key="delete_select")
    with col2:
        st.write("")
        if st.button("🗑️ Delete", use_container_width=True):
            transaction_service.delete(selected)
            st.rerun()


def render_transaction_form():
    """Render form to add a new transaction or edit an existing one."""
    st.subheader("➕ Add / Edit Transaction")

    by_id = {t.id: t for t in repository.load()}

    def edit_label(transaction_id):
        if transaction_id is None:
            return "New transaction"
        t = by_id[transaction_id]
        return f"{t.action.value} {t.quantity:g} {t.symbol} ({t.asset_type.value})"

    selected = st.selectbox("Edit", options=[None] + list(by_id), format_func=edit_label)
    current = by_id.get(selected)

    col1, col2 = st.columns(2)
    with col1:
        lookup_symbol = st.text_input("Look up symbol", placeholder="e.g., AAPL, NESN.SW")
    with col2:
        st.write("")
        if st.button("🔎 Fetch Name & Price", use_container_width=True) and lookup_symbol:
            with st.spinner("Fetching quote..."):
                st.session_state.prefill = {
                    'symbol': lookup_symbol.upper(),
                    'name': MarketDataService.lookup_name(lookup_symbol),
                    'price': MarketDataService.get_current_price(lookup_symbol),
                }
            if st.session_state.prefill['price'] is None:
                st.warning("⚠️ No quote found")

    prefill = st.session_state.prefill

    def initial(field: str, default=None):
        if current is not None:
            value = getattr(current, field)
            return default if value is None else value
        return default

    asset_types = [a.value for a in AssetType]
    actions = [a.value for a in Action]
    currencies = [c.value for c in Currency]

    # Outside the form so fee and expiry defaults follow the chosen type and currency
    col1, col2, col3 = st.columns(3)
    with col1:
        asset_type = st.selectbox("Asset Type*", asset_types,
                                  index=asset_types.index(initial('asset_type', AssetType.STOCK).value))
    with col2:
        action = st.selectbox("Action*", actions,
                              index=actions.index(initial('action', Action.BUY).value))
    with col3:
        currency = st.selectbox("Currency*", currencies,
                                index=currencies.index(initial('currency', Currency.EUR).value))

    with st.form("transaction_form"):
        col1, col2 = st.columns(2)
        with col1:
            symbol = st.text_input("Symbol*", value=initial('symbol', prefill.get('symbol', "")))
            name = st.text_input("Name", value=initial('name', prefill.get('name') or ""))
            quantity = st.number_input("Quantity*", min_value=0.0, step=1.0,
                                       value=float(initial('quantity', 1.0)),
                                       help="Shares, or option contracts of 100 shares")
            fees = st.number_input("Fees per unit", min_value=0.0, step=0.01,
                                   value=float(initial('fees', default_fees(asset_type, currency))))
        with col2:
            transaction_date = st.date_input("Transaction Date", value=initial('transaction_date', date.today()))
            transaction_price = st.number_input(
                "Price (stock)", min_value=0.0, step=0.01,
                value=float(initial('transaction_price', prefill.get('price') or 0.0))
            )
            strike_price = st.number_input("Strike (option)", min_value=0.0, step=0.5,
                                           value=float(initial('strike_price', 0.0)))
            premium = st.number_input("Premium (option)", min_value=0.0, step=0.01,
                                      value=float(initial('premium', 0.0)))
            underlying = st.number_input(
                "Underlying Price (option)", min_value=0.0, step=0.01,
                value=float(initial('underlying_asset_price', prefill.get('price') or 0.0)),
                help="Defaults to the strike when left at 0"
            )
            expiry_date = st.date_input("Expiry (option)",
                                        value=initial('expiry_date', third_friday_of_next_month()))

        submitted = st.form_submit_button("Save Transaction", use_container_width=True)

        if submitted:
            is_option = AssetType(asset_type) in OPTION_TYPES
            transaction = Transaction(
                asset_type=asset_type,
                action=action,
                symbol=symbol,
                name=name or None,
                quantity=quantity,
                currency=currency,
                fees=fees,
                transaction_date=transaction_date,
                transaction_price=None if is_option else transaction_price,
                strike_price=strike_price if is_option else None,
                premium=premium if is_option else None,
                underlying_asset_price=underlying if is_option else None,
                expiry_date=expiry_date if is_option else None,
            )
            try:
                if current is None:
                    stored = transaction_service.create(transaction)
                else:
                    stored = transaction_service.update(current.id, transaction)
                st.session_state.prefill = {}
                st.session_state.zoom_windows.pop(stored.id, None)
                st.success(f"✅ Saved {stored.action.value} {stored.quantity:g} {stored.symbol}")
                st.rerun()
            except InvalidTransactionError as e:
                st.error(f"❌ {e}")


def render_payoff_chart():
    """Render the payoff chart of a single transaction with zoom."""
    st.subheader("📉 Payoff at Expiry")

    transactions = repository.load()
    if not transactions:
        st.info("No transactions to simulate.")
        return

    by_id = {t.id: t for t in transactions}
    selected = st.selectbox(
        "Transaction", options=list(by_id), key="payoff_select",
        format_func=lambda i: f"{by_id[i].action.value} {by_id[i].quantity:g} "
                              f"{by_id[i].display_name} ({by_id[i].asset_type.value})"
    )
    transaction = by_id[selected]

    center = reference_price(transaction)
    default_window = default_price_range(center)
    if default_window is None:
        st.warning("⚠️ This transaction has no usable reference price.")
        return

    window = render_zoom_controls(transaction.id, default_window, center)
    curve = simulate([transaction], window[0], window[1])
    if curve.is_empty:
        st.warning("⚠️ Nothing to plot in this range.")
        return

    st.line_chart(curve_frame(curve))
    render_curve_stats(curve, transaction.currency.value)


def render_strategies():
    """Render combined payoff of multi-leg symbols and the AI explainer."""
    st.subheader("🧩 Strategies")

    symbols = portfolio_service.aggregator.strategy_symbols()
    if not symbols:
        st.info("Record at least two transactions on the same symbol to see a strategy.")
        return

    symbol = st.selectbox("Symbol", options=symbols)
    view = portfolio_service.aggregator.strategy(symbol)
    if view is None:
        return

    price = st.number_input("Reference Price", min_value=0.0, step=0.01,
                            value=float(view.reference_price or 0.0), key=f"strategy_price_{symbol}",
                            help="Center of the simulated price range")
    if price != view.reference_price:
        view = portfolio_service.aggregator.strategy(symbol, reference_price=price)

    st.markdown(f"**{view.transactions[0].display_name}** ({view.symbol}) - {len(view.transactions)} legs")

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Invested", format_number(view.totals.invested_amount, view.currency))
    with col2:
        st.metric("Premium Income", format_number(view.totals.premium_income, view.currency))
    with col3:
        st.metric("Realized Income", format_number(view.totals.realized_income, view.currency))
    with col4:
        st.metric("Risk Exposure", view.totals.risk_exposure.format(view.currency))

    if view.curve.is_empty:
        st.warning("⚠️ No usable reference price for this strategy.")
    else:
        default_window = (view.curve.price_min, view.curve.price_max)
        window = render_zoom_controls(f"strategy_{symbol}_{price:g}", default_window, view.reference_price)
        curve = view.curve if window == default_window else simulate(view.transactions, window[0], window[1])
        st.line_chart(curve_frame(curve))
        render_curve_stats(curve, view.currency)

    st.markdown("---")
    if st.button("🤖 Explain Strategy", type="primary", use_container_width=True):
        with st.spinner("Asking the AI model..."):
            st.session_state.strategy_analysis[symbol] = StrategyAnalyst().explain(view.transactions)

    analysis = st.session_state.strategy_analysis.get(symbol)
    if analysis:
        st.markdown(analysis)
        st.caption("⚠️ General explanation only. Not financial advice.")


# ==================== MAIN APP ====================
def main():
    """Main application entry point."""
    st.title("📈 Strady")
    st.markdown("*Stock & Option Strategy Tracker*")

    render_sidebar()

    tab1, tab2, tab3, tab4 = st.tabs([
        "📊 Dashboard", "➕ Add / Edit", "📉 Payoff", "🧩 Strategies"
    ])

    with tab1:
        dashboard = portfolio_service.build_dashboard()
        render_portfolio_summary(dashboard)
        st.markdown("---")
        render_transaction_list(dashboard)

    with tab2:
        render_transaction_form()

    with tab3:
        render_payoff_chart()

    with tab4:
        render_strategies()

    # Footer
    st.markdown("---")
    st.markdown(
        "<div style='text-align: center; color: gray;'>"
        "⚠️ Payoffs are intrinsic values at expiry only. Not financial advice.</div>",
        unsafe_allow_html=True
    )


if __name__ == "__main__":
    main()
