"""
Streamlit Frontend for the Expense Dashboard

One page: expenses per project and month, with buttons to reload
the data and to seed the backend with demo records.

DESIGN PRINCIPLES:
1. The page only renders DashboardState and forwards clicks
2. Buttons are disabled while a backend call is in flight
3. Errors are shown as a message; the previous chart stays
"""

import asyncio
import html

import streamlit as st
import structlog

from expense_dashboard.config import get_settings, validate_all_settings
from expense_dashboard.dashboard import (
    DashboardController,
    build_expense_chart,
    format_currency,
)
from expense_dashboard.orchestrator import create_app_components


logger = structlog.get_logger(__name__)


# Page configuration
st.set_page_config(
    page_title="Gastos por Proyecto",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="collapsed",
)

# Custom CSS
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .empty-box {
        padding: 24px;
        background-color: #ffffff;
        border-radius: 8px;
        text-align: center;
        color: #6b7280;
        box-shadow: 0 1px 3px rgba(0,0,0,0.08);
    }
    .chip-row {display: flex; flex-wrap: wrap; gap: 10px; margin: 6px 0 2px;}
    .chip {display: flex; align-items: center; font-size: 0.85rem; font-weight: 500;}
    .dot {width: 12px; height: 12px; border-radius: 50%; margin-right: 6px; display: inline-block;}
    .big-number {
        font-size: 1.6em;
        font-weight: bold;
        color: #111827;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """
    Get or create application components (cached).

    Returns (components, init_error). The error is shown by the caller
    so it is rendered on every run, not replayed from the cache.
    """
    try:
        return create_app_components(), None
    except Exception as e:
        logger.warning("app_init_failed", error=str(e))
        return create_app_components(use_storage=False), str(e)


def get_controller() -> DashboardController:
    """Shared services, per-session state."""
    (shared, _, _), _ = get_components()
    if "dashboard_state" not in st.session_state:
        st.session_state.dashboard_state = shared.new_state()
    return shared.with_state(st.session_state.dashboard_state)


def main():
    """Main application entry point."""
    controller = get_controller()
    _, init_error = get_components()
    if init_error:
        st.warning(f"No se pudo conectar al almacenamiento: {init_error}")

    page = st.sidebar.radio(
        "Navegar a:",
        ["📈 Gastos", "⚙️ Configuración"],
        index=0,
    )

    if page == "📈 Gastos":
        render_dashboard_page(controller)
    else:
        render_settings_page(controller)


def render_dashboard_page(controller: DashboardController):
    """Render the expense chart page."""
    state = controller.state

    # Initial load
    if not state.loaded_once and not state.is_busy:
        run_async(controller.request("refresh"))

    title_col, refresh_col, seed_col = st.columns([6, 2, 2])
    with title_col:
        st.title("📈 Gastos por Proyecto")
    with refresh_col:
        label = "Cargando..." if state.is_busy else "🔄 Refrescar"
        if st.button(label, key="refresh", disabled=state.is_busy):
            run_async(controller.request("refresh"))
            st.rerun()
    with seed_col:
        label = "Cargando..." if state.is_busy else "🌱 Agregar Datos de Prueba"
        if st.button(label, key="seed", disabled=state.is_busy):
            run_async(controller.request("seed"))
            st.rerun()

    if state.error:
        st.error(f"Error: {state.error}")

    if state.pending_operation:
        with st.spinner("Cargando..."):
            run_async(controller.run_pending())
        st.rerun()

    if not state.expenses:
        st.markdown("""
        <div class="empty-box">
            No hay datos para mostrar.
            Usa el botón "Agregar Datos de Prueba" para generar datos.
        </div>
        """, unsafe_allow_html=True)
        return

    render_chart_card(controller)


def render_chart_card(controller: DashboardController):
    """Render the total, the series toggles and the chart."""
    state = controller.state
    catalog = controller.catalog
    currency = get_settings().dashboard.currency_symbol

    st.subheader("Gastos por Proyecto y Mes")
    st.markdown(
        f"Total: <span class='big-number'>{format_currency(state.total_amount, currency)}</span>",
        unsafe_allow_html=True,
    )

    if state.pivot.remapped_count:
        st.warning(
            f"{state.pivot.remapped_count} gastos con proyecto desconocido "
            f"se asignaron a '{catalog.fallback}'."
        )

    # Legend chips
    chips = "".join(
        f"<span class='chip'><span class='dot' style='background:{catalog.color_for(p)}'></span>{html.escape(p)}</span>"
        for p in catalog.projects
    )
    chips += (
        f"<span class='chip'><span class='dot' style='background:{catalog.total_color}'></span>Total</span>"
    )
    st.markdown(f"<div class='chip-row'>{chips}</div>", unsafe_allow_html=True)

    # Series toggles
    cols = st.columns(len(catalog.projects) + 1)
    for col, project in zip(cols, catalog.projects):
        selected = project in state.selected_projects
        if col.checkbox(project, value=selected, key=f"project_{project}") != selected:
            controller.toggle_project(project)
    if cols[-1].checkbox("Total", value=state.show_total, key="show_total") != state.show_total:
        controller.toggle_total()

    chart = build_expense_chart(
        state.pivot,
        catalog,
        selected_projects=state.selected_projects,
        show_total=state.show_total,
    )
    if chart is None:
        st.info("No hay datos para mostrar.")
    else:
        st.altair_chart(chart, use_container_width=True)

    with st.expander("📋 Tabla mensual"):
        st.dataframe(
            [row.to_chart_dict() for row in state.pivot.rows],
            use_container_width=True,
            hide_index=True,
        )


def render_settings_page(controller: DashboardController):
    """Render the settings page."""
    st.title("⚙️ Configuración")

    st.markdown("### Estado de la conexión")
    status = validate_all_settings()
    sections = [
        ("Google Sheets (almacenamiento)", "google_sheets"),
        ("Catálogo de proyectos", "dashboard"),
        ("Aplicación", "app"),
    ]
    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Sin configurar")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Catálogo")
    catalog = controller.catalog
    st.markdown(f"**Proyectos:** {', '.join(catalog.projects)}")
    st.markdown(f"**Proyectos desconocidos:** {catalog.unknown_project_policy.value}")
    if catalog.unknown_project_policy.value == "fallback":
        st.markdown(f"**Se asignan a:** {catalog.fallback}")
    st.markdown(
        "Para configurar la aplicación crea un archivo `.env`. "
        "Consulta `.env.example` para ver las variables disponibles."
    )


if __name__ == "__main__":
    main()
