# frontend/streamlit_app.py

import json
import os
from datetime import date

import pandas as pd
import plotly.express as px
import requests
import streamlit as st

# ---------------- Page config ----------------
st.set_page_config(page_title="XFin", layout="wide", page_icon="💸")

API_BASE = os.environ.get("XFIN_API_URL", "http://localhost:5000")
API_PREFIX = "/api/v1"
PAGE_SIZE = 20


# ---------------- Helpers ----------------
def safe_json(resp):
    try:
        return resp.json()
    except ValueError:
        return None


def money(value):
    return f"R$ {float(value or 0):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def _refresh_access_token():
    refresh_token = st.session_state.get("refresh_token")
    if not refresh_token:
        return False
    r = requests.post(
        API_BASE.rstrip("/") + API_PREFIX + "/auth/refresh",
        headers={"Authorization": f"Bearer {refresh_token}"},
        timeout=10,
    )
    if r.status_code != 200:
        return False
    payload = r.json()
    st.session_state.token = payload["access_token"]
    st.session_state.refresh_token = payload["refresh_token"]
    return True


def api_request(method, path, json=None, data=None, files=None, params=None, timeout=10, retry=True):
    headers = {}
    if st.session_state.get("token"):
        headers["Authorization"] = f"Bearer {st.session_state.token}"
    url = API_BASE.rstrip("/") + API_PREFIX + path

    try:
        response = requests.request(
            method.upper(), url, headers=headers, json=json, data=data, files=files, params=params, timeout=timeout
        )
    except requests.RequestException as e:
        st.error(f"❌ Falha de conexão: {e}")
        return None

    # access tokens are short lived; rotate once and replay
    if response.status_code == 401 and retry and _refresh_access_token():
        return api_request(method, path, json=json, data=data, files=files, params=params,
                           timeout=timeout, retry=False)
    return response


def api_call(method, path, success=None, **kwargs):
    """Request that reports the API's error message; returns the JSON body or None."""
    r = api_request(method, path, **kwargs)
    if r is None:
        return None
    if r.status_code >= 400:
        body = safe_json(r) or {}
        st.error(f"❌ {body.get('error', f'Erro {r.status_code}')}")
        return None
    if success:
        st.success(f"✅ {success}")
    return safe_json(r) if r.content else {}


def photo_file(upload):
    if upload is None:
        return None
    return {"photo": (upload.name, upload.getvalue(), upload.type)}


def get_categories(cat_type=None):
    params = {"type": cat_type} if cat_type else None
    return api_call("GET", "/categories", params=params) or []


def category_picker(label, cat_type, key, allow_empty=False):
    categories = get_categories(cat_type)
    options = {c["name"]: c["id"] for c in categories}
    names = (["(nenhuma)"] if allow_empty else []) + list(options)
    choice = st.selectbox(label, names, key=key)
    return options.get(choice)


# ---------------- Session State ----------------
def init_session_state():
    for key in ("token", "refresh_token", "user"):
        if key not in st.session_state:
            st.session_state[key] = None


def handle_auth(name, email, password, remember_me, is_register=False):
    if is_register:
        r = api_request("POST", "/auth/register", json={"name": name, "email": email, "password": password})
    else:
        r = api_request("POST", "/auth/login",
                        json={"email": email, "password": password, "remember_me": remember_me})
    if r is None:
        return False
    payload = safe_json(r) or {}
    if r.status_code not in (200, 201):
        st.error(f"❌ {payload.get('error', 'Falha na autenticação')}")
        return False

    st.session_state.token = payload["access_token"]
    st.session_state.refresh_token = payload["refresh_token"]
    st.session_state.user = payload["user"]
    st.success("✅ Bem-vindo!")
    return True


def logout():
    if st.session_state.refresh_token:
        requests.post(
            API_BASE.rstrip("/") + API_PREFIX + "/auth/logout",
            headers={"Authorization": f"Bearer {st.session_state.refresh_token}"},
            timeout=10,
        )
    st.session_state.token = None
    st.session_state.refresh_token = None
    st.session_state.user = None


# ---------------- Sidebar ----------------
def render_sidebar():
    with st.sidebar:
        st.title("🔐 Conta")

        if st.session_state.token:
            st.success(f"Conectado como **{st.session_state.user['email']}**")
            if st.button("🚪 Sair", use_container_width=True, key="logout_btn"):
                logout()
                st.rerun()
            return

        action = st.radio("Ação", ["Entrar", "Cadastrar"], horizontal=True, key="auth_tab")
        name = st.text_input("👤 Nome", key="name_input") if action == "Cadastrar" else None
        email = st.text_input("📧 Email", key="email_input")
        password = st.text_input("🔒 Senha", type="password", key="password_input")
        remember_me = st.checkbox("Lembrar de mim", key="remember_me") if action == "Entrar" else False

        if st.button("Enviar", use_container_width=True, key="auth_submit"):
            if email and password:
                if handle_auth(name, email, password, remember_me, action == "Cadastrar"):
                    st.rerun()
            else:
                st.warning("Informe email e senha")


# ---------------- Onboarding ----------------
def render_onboarding():
    st.header("👋 Vamos começar")
    st.write("Informe quanto você tem hoje. Esse é o ponto de partida do seu saldo.")
    with st.form("initial_balance"):
        value = st.number_input("Saldo inicial (R$)", value=0.0, step=100.0, format="%.2f")
        if st.form_submit_button("Salvar"):
            user = api_call("POST", "/onboarding/initial-balance", json={"initial_balance": value},
                            success="Saldo inicial definido")
            if user:
                st.session_state.user = user
                st.rerun()


# ---------------- Dashboard ----------------
def render_dashboard():
    st.header("📊 Visão geral")
    summary = api_call("GET", "/dashboard/summary")
    if not summary:
        return

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Saldo atual", money(summary["current_balance"]), money(summary["balance_evolution"]))
    col2.metric("Receitas do mês", money(summary["month_income"]))
    col3.metric("Despesas do mês", money(summary["month_expense"]), delta_color="inverse")
    col4.metric("Projeção do mês", money(summary["month_projection"]))

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Dívidas em aberto", money(summary["total_debts"]))
    col2.metric("A receber", money(summary["total_receivables"]))
    col3.metric("Ganhos fixos", money(summary["total_recurring_income"]))
    col4.metric("Gastos fixos", money(summary["total_recurring_expense"]))

    if summary["due_today"]:
        st.subheader("⏰ Vence hoje")
        for item in summary["due_today"]:
            who = item.get("creditor_name") or item.get("debtor_name")
            label = "Pagar" if item["kind"] == "DEBT" else "Receber"
            st.warning(f"{label}: **{who}** · {money(item['total_amount'])}")

    by_category = summary.get("month_expenses_by_category") or []
    col1, col2 = st.columns([2, 1])
    with col1:
        if by_category:
            cat_df = pd.DataFrame(by_category)
            fig = px.pie(cat_df, names="category_name", values="total", title="Despesas do mês por categoria",
                         hole=0.4)
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("Nenhuma despesa neste mês")
    with col2:
        st.write("**Próximas dívidas**")
        for debt in summary["pending_debts"]:
            st.write(f"{debt['due_date']} · {debt['creditor_name']} · {money(debt['total_amount'])} ({debt['status']})")
        st.write("**Próximos recebimentos**")
        for rec in summary["pending_receivables"]:
            st.write(f"{rec['due_date']} · {rec['debtor_name']} · {money(rec['total_amount'])} ({rec['status']})")


# ---------------- Transactions ----------------
def transactions_frame(rows):
    if not rows:
        return pd.DataFrame(columns=["id", "date", "type", "amount", "category", "description", "is_important"])
    df = pd.DataFrame(rows)
    df["category"] = df["category"].map(lambda c: c["name"] if isinstance(c, dict) else "")
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce")
    return df


def render_transactions():
    st.header("💳 Transações")

    with st.expander("➕ Nova transação"):
        tx_type = st.radio("Tipo", ["EXPENSE", "INCOME"], horizontal=True, key="tx_type",
                           format_func=lambda t: "Despesa" if t == "EXPENSE" else "Receita")
        category_id = category_picker("Categoria", tx_type, key="tx_category")
        with st.form("new_tx", clear_on_submit=True):
            amount = st.number_input("Valor (R$)", min_value=0.01, step=1.0, format="%.2f")
            tx_date = st.date_input("Data", value=date.today())
            description = st.text_input("Descrição")
            payment_method = st.selectbox("Forma de pagamento", ["", "CASH", "CARD", "PIX", "BANK_TRANSFER", "OTHER"])
            is_important = st.checkbox("Importante")
            is_installment = st.checkbox("Parcelado")
            installments = st.number_input("Parcelas", min_value=1, max_value=120, value=1)
            if st.form_submit_button("Salvar"):
                api_call("POST", "/transactions", success="Transação registrada", json={
                    "type": tx_type,
                    "amount": amount,
                    "date": tx_date.isoformat(),
                    "category_id": category_id,
                    "description": description,
                    "payment_method": payment_method or None,
                    "is_important": is_important,
                    "is_installment": is_installment,
                    "installments_total": int(installments) if is_installment else None,
                })

    col1, col2, col3, col4 = st.columns(4)
    start = col1.date_input("De", value=None, key="tx_start")
    end = col2.date_input("Até", value=None, key="tx_end")
    type_filter = col3.selectbox("Tipo", ["Todos", "INCOME", "EXPENSE"], key="tx_filter_type")
    only_important = col4.checkbox("Só importantes", key="tx_important")

    params = {}
    if start:
        params["start_date"] = start.isoformat()
    if end:
        params["end_date"] = end.isoformat()
    if type_filter != "Todos":
        params["type"] = type_filter
    if only_important:
        params["is_important"] = "true"

    df = transactions_frame(api_call("GET", "/transactions", params=params) or [])
    if df.empty:
        st.info("Nenhuma transação encontrada")
        return

    search = st.text_input("🔎 Buscar na descrição", key="tx_search")
    if search:
        df = df[df["description"].fillna("").str.contains(search, case=False)]

    sort_column = st.selectbox("Ordenar por", ["date", "amount", "category"], key="tx_sort")
    ascending = st.toggle("Crescente", value=False, key="tx_sort_asc")
    df = df.sort_values(sort_column, ascending=ascending)

    pages = max(1, -(-len(df) // PAGE_SIZE))
    page = st.number_input("Página", min_value=1, max_value=pages, value=1, key="tx_page")
    view = df.iloc[(page - 1) * PAGE_SIZE: page * PAGE_SIZE].copy()
    view["date"] = view["date"].dt.strftime("%Y-%m-%d")
    view["amount"] = view["amount"].map(money)
    st.dataframe(view[["id", "date", "type", "amount", "category", "description", "is_important"]],
                 use_container_width=True, hide_index=True)
    st.caption(f"{len(df)} transações · página {page} de {pages}")

    monthly = df.assign(month=df["date"].dt.to_period("M").astype(str)).groupby(["month", "type"])["amount"].sum()
    if not monthly.empty:
        fig = px.bar(monthly.reset_index(), x="month", y="amount", color="type", barmode="group",
                     title="Receitas e despesas por mês")
        st.plotly_chart(fig, use_container_width=True)

    delete_id = st.number_input("ID para excluir", min_value=0, step=1, key="tx_delete_id")
    if st.button("🗑️ Excluir transação", key="tx_delete") and delete_id:
        api_call("DELETE", f"/transactions/{int(delete_id)}", success="Transação excluída")


# ---------------- Categories ----------------
def render_categories():
    st.header("🏷️ Categorias")
    with st.form("new_category", clear_on_submit=True):
        name = st.text_input("Nome")
        cat_type = st.selectbox("Tipo", ["EXPENSE", "INCOME"])
        if st.form_submit_button("Criar") and name:
            api_call("POST", "/categories", json={"name": name, "type": cat_type}, success="Categoria criada")

    for category in get_categories():
        col1, col2 = st.columns([4, 1])
        badge = " · padrão" if category["is_default"] else ""
        col1.write(f"**{category['name']}** ({category['type']}){badge}")
        if not category["is_default"] and col2.button("Excluir", key=f"cat_del_{category['id']}"):
            api_call("DELETE", f"/categories/{category['id']}", success="Categoria excluída")
            st.rerun()


# ---------------- Recurring ----------------
def render_recurring(path, title, cat_type):
    st.subheader(title)
    with st.expander("➕ Novo item"):
        category_id = category_picker("Categoria", cat_type, key=f"{path}_category", allow_empty=True)
        with st.form(f"{path}_form", clear_on_submit=True):
            name = st.text_input("Nome")
            amount = st.number_input("Valor (R$)", min_value=0.01, step=1.0, format="%.2f")
            day = st.number_input("Dia do mês", min_value=1, max_value=31, value=5)
            start = st.date_input("Início", value=date.today())
            if st.form_submit_button("Salvar") and name:
                api_call("POST", path, success="Item criado", json={
                    "name": name, "amount": amount, "day_of_month": int(day),
                    "start_date": start.isoformat(), "category_id": category_id,
                })

    if st.button("Lançar todos os ativos hoje", key=f"{path}_apply_all"):
        result = api_call("POST", f"{path}/create-all-transactions")
        if result is not None:
            st.success(f"✅ {result['created']} transações criadas")

    for item in api_call("GET", path) or []:
        col1, col2, col3, col4 = st.columns([4, 1, 1, 1])
        state = "ativo" if item["active"] else "inativo"
        col1.write(f"**{item['name']}** · {money(item['amount'])} · dia {item['day_of_month']} ({state})")
        if col2.button("Lançar", key=f"{path}_apply_{item['id']}", disabled=not item["active"]):
            api_call("POST", f"{path}/{item['id']}/create-transaction", success="Transação criada")
        if col3.button("Ativar" if not item["active"] else "Pausar", key=f"{path}_toggle_{item['id']}"):
            api_call("PUT", f"{path}/{item['id']}", json={"active": not item["active"]})
            st.rerun()
        if col4.button("Excluir", key=f"{path}_del_{item['id']}"):
            api_call("DELETE", f"{path}/{item['id']}", success="Item excluído")
            st.rerun()


# ---------------- Debts & Receivables ----------------
STATUS_ICONS = {"OPEN": "🟡", "OVERDUE": "🔴", "PAID": "🟢", "RECEIVED": "🟢"}


def render_debts():
    st.subheader("💸 Dívidas")
    with st.expander("➕ Nova dívida"):
        category_id = category_picker("Categoria", "EXPENSE", key="debt_category", allow_empty=True)
        with st.form("debt_form", clear_on_submit=True):
            creditor = st.text_input("Credor")
            description = st.text_input("Descrição")
            amount = st.number_input("Valor (R$)", min_value=0.01, step=10.0, format="%.2f")
            start = st.date_input("Início", value=date.today(), key="debt_start")
            due = st.date_input("Vencimento", value=date.today(), key="debt_due")
            priority = st.selectbox("Prioridade", ["MEDIUM", "LOW", "HIGH"])
            if st.form_submit_button("Salvar") and creditor:
                api_call("POST", "/debts", success="Dívida registrada", json={
                    "creditor_name": creditor, "description": description, "total_amount": amount,
                    "start_date": start.isoformat(), "due_date": due.isoformat(), "priority": priority,
                    "category_id": category_id,
                })

    for debt in api_call("GET", "/debts") or []:
        col1, col2, col3 = st.columns([4, 1, 1])
        col1.write(f"{STATUS_ICONS[debt['status']]} **{debt['creditor_name']}** · {money(debt['total_amount'])}"
                   f" · vence {debt['due_date']} · {debt['priority']}")
        if debt["status"] == "PAID":
            if col2.button("Reabrir", key=f"debt_reopen_{debt['id']}"):
                api_call("PATCH", f"/debts/{debt['id']}/unmark-paid")
                st.rerun()
        elif col2.button("Pagar", key=f"debt_pay_{debt['id']}"):
            api_call("PATCH", f"/debts/{debt['id']}/mark-paid", success="Dívida paga")
            st.rerun()
        if col3.button("Excluir", key=f"debt_del_{debt['id']}"):
            api_call("DELETE", f"/debts/{debt['id']}")
            st.rerun()


def render_receivables():
    st.subheader("💰 A receber")
    with st.form("receivable_form", clear_on_submit=True):
        debtor = st.text_input("Devedor")
        description = st.text_input("Descrição")
        amount = st.number_input("Valor (R$)", min_value=0.01, step=10.0, format="%.2f")
        due = st.date_input("Vencimento", value=date.today(), key="rec_due")
        if st.form_submit_button("Salvar") and debtor:
            api_call("POST", "/receivables", success="Recebível registrado", json={
                "debtor_name": debtor, "description": description, "total_amount": amount,
                "due_date": due.isoformat(),
            })

    for rec in api_call("GET", "/receivables") or []:
        col1, col2, col3 = st.columns([4, 1, 1])
        col1.write(f"{STATUS_ICONS[rec['status']]} **{rec['debtor_name']}** · {money(rec['total_amount'])}"
                   f" · vence {rec['due_date']}")
        if rec["status"] == "RECEIVED":
            if col2.button("Reabrir", key=f"rec_reopen_{rec['id']}"):
                api_call("PATCH", f"/receivables/{rec['id']}/unmark-received")
                st.rerun()
        elif col2.button("Recebido", key=f"rec_mark_{rec['id']}"):
            api_call("PATCH", f"/receivables/{rec['id']}/mark-received", success="Recebimento registrado")
            st.rerun()
        if col3.button("Excluir", key=f"rec_del_{rec['id']}"):
            api_call("DELETE", f"/receivables/{rec['id']}")
            st.rerun()


# ---------------- Wishlist ----------------
def render_wishlist():
    st.header("🛍️ Lista de desejos")
    with st.expander("➕ Novo desejo"):
        with st.form("wish_form", clear_on_submit=True):
            name = st.text_input("Nome")
            priority = st.slider("Prioridade", 1, 5, 3)
            price = st.number_input("Preço estimado (R$)", min_value=0.0, step=10.0, format="%.2f")
            note = st.text_area("Por que eu quero isso?")
            links = st.text_area("Links de compra (um por linha)")
            photo = st.file_uploader("Foto", type=["jpg", "jpeg", "png", "gif", "webp"])
            if st.form_submit_button("Salvar") and name:
                link_list = [line.strip() for line in links.splitlines() if line.strip()]
                api_call("POST", "/wishlist", success="Desejo salvo", files=photo_file(photo), data={
                    "name": name, "priority": priority, "estimated_price": price or "",
                    "utility_note": note, "purchase_links": json.dumps(link_list),
                })

    for item in api_call("GET", "/wishlist") or []:
        with st.container(border=True):
            col1, col2 = st.columns([1, 3])
            if item["photo_url"]:
                col1.image(API_BASE.rstrip("/") + item["photo_url"])
            col2.write(f"**{item['name']}** · {'⭐' * item['priority']} · {item['status']}")
            if item["estimated_price"]:
                col2.write(money(item["estimated_price"]))
            for link in item["purchase_links"]:
                col2.markdown(f"[{link}]({link})")
            if item["status"] == "PLANNED" and col2.button("Comprei!", key=f"wish_bought_{item['id']}"):
                api_call("PUT", f"/wishlist/{item['id']}", json={"status": "BOUGHT"})
                st.rerun()
            if col2.button("Excluir", key=f"wish_del_{item['id']}"):
                api_call("DELETE", f"/wishlist/{item['id']}")
                st.rerun()


# ---------------- Piggy banks ----------------
PERIOD_LABELS = {"DAY": "por dia", "WEEK": "por semana", "FORTNIGHT": "por quinzena", "MONTH": "por mês"}


def render_piggy_banks():
    st.header("🐷 Caixinhas")
    with st.expander("➕ Nova caixinha"):
        with st.form("piggy_form", clear_on_submit=True):
            name = st.text_input("Nome")
            description = st.text_input("Descrição")
            target = st.number_input("Meta (R$)", min_value=0.0, step=100.0, format="%.2f")
            per_period = st.number_input("Valor por período (R$)", min_value=0.01, step=10.0, format="%.2f")
            period = st.selectbox("Período", list(PERIOD_LABELS), format_func=PERIOD_LABELS.get)
            photo = st.file_uploader("Foto", type=["jpg", "jpeg", "png", "gif", "webp"], key="piggy_photo")
            if st.form_submit_button("Criar") and name:
                api_call("POST", "/piggy-banks", success="Caixinha criada", files=photo_file(photo), data={
                    "name": name, "description": description, "target_amount": target or "",
                    "amount_per_period": per_period, "period_type": period,
                })

    for piggy in api_call("GET", "/piggy-banks") or []:
        with st.container(border=True):
            st.write(f"**{piggy['name']}** · {money(piggy['current_amount'])}"
                     f" · {money(piggy['amount_per_period'])} {PERIOD_LABELS[piggy['period_type']]}")
            if piggy["progress_percent"] is not None:
                st.progress(min(1.0, piggy["progress_percent"] / 100),
                            text=f"{piggy['progress_percent']}% de {money(piggy['target_amount'])}")
            col1, col2, col3 = st.columns([2, 1, 1])
            amount = col1.number_input("Valor", min_value=0.01, step=10.0, key=f"piggy_amount_{piggy['id']}")
            if col2.button("Depositar", key=f"piggy_dep_{piggy['id']}"):
                api_call("POST", f"/piggy-banks/{piggy['id']}/transactions", json={"amount": amount, "type": "DEPOSIT"})
                st.rerun()
            if col3.button("Retirar", key=f"piggy_wd_{piggy['id']}"):
                api_call("POST", f"/piggy-banks/{piggy['id']}/transactions",
                         json={"amount": amount, "type": "WITHDRAWAL"})
                st.rerun()
            if piggy["transactions"]:
                st.dataframe(pd.DataFrame(piggy["transactions"])[["created_at", "type", "amount", "description"]],
                             use_container_width=True, hide_index=True)


def main():
    init_session_state()
    st.title("💸 XFin")
    render_sidebar()

    if not st.session_state.token:
        st.info("🔐 Entre ou cadastre-se para começar")
        return
    if st.session_state.user.get("initial_balance") is None:
        render_onboarding()
        return

    tabs = st.tabs(["📊 Dashboard", "💳 Transações", "🔁 Fixos", "📑 Dívidas", "🛍️ Desejos", "🐷 Caixinhas",
                    "🏷️ Categorias"])
    with tabs[0]:
        render_dashboard()
    with tabs[1]:
        render_transactions()
    with tabs[2]:
        render_recurring("/recurring-incomes", "Ganhos fixos", "INCOME")
        render_recurring("/recurring-expenses", "Gastos fixos", "EXPENSE")
    with tabs[3]:
        render_debts()
        render_receivables()
    with tabs[4]:
        render_wishlist()
    with tabs[5]:
        render_piggy_banks()
    with tabs[6]:
        render_categories()


if __name__ == "__main__":
    main()
