# =============================================================================
# 02_Peritagem.py - Sector intake and workflow stage updates
# =============================================================================
"""
Tabs:
1. New peritagem - intake form (tag, invoice, tag photo, services + photos)
2. Workflow      - move an existing sector through execution, final check or scrap
"""
from __future__ import annotations
from datetime import date

import streamlit as st

from sector_core.auth.authentication import require_authentication
from sector_core.auth.navigation import initialize_navigation
from sector_core.context import get_app_context
from sector_core.data.models import PeritagemForm, PhotoType, PhotoUpload, SectorStatus, ServiceSelection
from sector_core.errors import ErrorContext
from sector_core.services.validation import form_errors
from sector_core.ui.theme import STATUS_LABELS, header

st.set_page_config(
    page_title="Peritagem - Sector Recovery Tracker",
    page_icon="🔍",
    layout="wide",
)

context = get_app_context()
require_authentication(context)
initialize_navigation(context)

header("Peritagem", "Register incoming sectors and update their stage", icon="🔍")

service = context.submit_service


def show_result(result, success_text: str) -> None:
    if result.queued:
        st.info("Saved offline. The change will be sent when the connection is back.")
    elif result:
        st.success(success_text)
    else:
        st.error(result.error)


def load_service_types():
    if context.monitor.is_offline:
        return []
    service_types = None
    with ErrorContext("Loading services", monitor=context.monitor):
        service_types = context.guard.execute_with_auth_check(context.repository.fetch_service_types)
    return service_types or []


tab_new, tab_workflow = st.tabs(["New peritagem", "Workflow"])

# ============================================================================
# NEW PERITAGEM
# ============================================================================
with tab_new:
    service_types = load_service_types()
    if not service_types:
        st.warning("The service list is unavailable. New sectors can only be registered online.")

    with st.form("peritagem_form", clear_on_submit=False):
        col1, col2 = st.columns(2)
        tag_number = col1.text_input("Tag number")
        entry_invoice = col2.text_input("Entry invoice")
        entry_date = col1.date_input("Entry date", value=date.today())
        tag_file = col2.file_uploader("Tag photo", type=["jpg", "jpeg", "png"])
        entry_observations = st.text_area("Observations")

        st.markdown("**Services**")
        selections = []
        for service_type in service_types:
            sid = service_type["id"]
            c1, c2, c3 = st.columns([2, 1, 3])
            selected = c1.checkbox(service_type["name"], key=f"svc_{sid}")
            quantity = c2.number_input("Qty", min_value=1, value=1, step=1, key=f"qty_{sid}")
            photos = c3.file_uploader(
                "Photos", type=["jpg", "jpeg", "png"], accept_multiple_files=True, key=f"photos_{sid}"
            )
            selections.append(ServiceSelection(
                service_id=sid,
                name=service_type["name"],
                selected=selected,
                quantity=int(quantity),
                photos=[
                    PhotoUpload(filename=f.name, content=f.getvalue(), photo_type=PhotoType.BEFORE)
                    for f in photos or []
                ],
            ))

        submitted = st.form_submit_button("Register peritagem", type="primary")

    if submitted:
        form = PeritagemForm(
            tag_number=tag_number.strip(),
            entry_invoice=entry_invoice.strip(),
            entry_date=entry_date,
            entry_observations=entry_observations or None,
            services=selections,
        )

        if tag_file is not None and form.tag_number:
            photo = PhotoUpload(filename=tag_file.name, content=tag_file.getvalue(), photo_type=PhotoType.TAG)
            with ErrorContext("Tag photo upload", monitor=context.monitor):
                form.tag_photo_url = context.guard.execute_with_auth_check(
                    lambda: context.repository.upload_photo(photo, folder=f"{form.tag_number}/tag")
                )

        errors = form_errors(form)
        if any(errors.values()):
            missing = ", ".join(name.replace("_", " ") for name, bad in errors.items() if bad)
            st.error(f"Please complete: {missing}")
        else:
            with st.spinner("Saving peritagem..."):
                result = service.submit_peritagem(form)
            show_result(result, f"Peritagem registered for tag {form.tag_number}")

# ============================================================================
# WORKFLOW
# ============================================================================
with tab_workflow:
    sectors = None
    if not context.monitor.is_offline:
        with ErrorContext("Loading sectors", monitor=context.monitor):
            sectors = context.guard.execute_with_auth_check(context.repository.fetch_sectors)

    if sectors is None or sectors.empty:
        st.info("No sectors available.")
        st.stop()

    active = sectors[~sectors["current_status"].isin([SectorStatus.CONCLUIDO.value, SectorStatus.SUCATEADO.value])]
    if active.empty:
        st.info("Every sector is closed.")
        st.stop()

    options = {
        f"{row.tag_number} · {STATUS_LABELS.get(row.current_status, row.current_status)}": row
        for row in active.itertuples()
    }
    choice = st.selectbox("Sector", list(options))
    sector = options[choice]
    status = SectorStatus(sector.current_status)

    if status in (SectorStatus.EM_EXECUCAO, SectorStatus.PRODUCAO_COMPLETA):
        if st.button("Production completed", type="primary"):
            show_result(service.complete_execution(sector.id), "Sector moved to final check")

    if status is SectorStatus.CHECAGEM_FINAL_PENDENTE:
        with st.form("checagem_form"):
            exit_invoice = st.text_input("Exit invoice")
            exit_date = st.date_input("Exit date", value=date.today())
            exit_observations = st.text_area("Exit observations")
            if st.form_submit_button("Complete final check", type="primary"):
                show_result(
                    service.complete_checagem(sector.id, exit_invoice, exit_date, exit_observations or None),
                    "Sector completed",
                )

    if status is SectorStatus.SUCATEADO_PENDENTE:
        with st.form("scrap_confirm_form"):
            return_invoice = st.text_input("Return invoice")
            return_date = st.date_input("Return date", value=date.today())
            if st.form_submit_button("Confirm scrap", type="primary"):
                show_result(service.confirm_scrap(sector.id, return_invoice or None, return_date), "Scrap confirmed")
    else:
        with st.expander("Send to scrap"):
            reason = st.text_area("Scrap reason", key="scrap_reason")
            if st.button("Send to scrap validation"):
                show_result(service.mark_scrap_pending(sector.id, reason), "Sector sent to scrap validation")
