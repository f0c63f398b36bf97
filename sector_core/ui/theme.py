import streamlit as st

# === COLOR PALETTE ===
PRIMARY_COLOR    = "#1d4ed8"
SECONDARY_COLOR  = "#0f766e"
SUCCESS_COLOR    = "#10b981"
WARNING_COLOR    = "#f59e0b"
DANGER_COLOR     = "#ef4444"
TEXT_COLOR       = "#1f2937"
SUBTLE_TEXT      = "#4b5563"
GRID_COLOR       = "#e5e7eb"
CARD_BG_LIGHT    = "#ffffff"

# One color per workflow stage, keyed by the stored status value
STATUS_COLORS = {
    "peritagemPendente": "#6366f1",
    "emExecucao": PRIMARY_COLOR,
    "producaoCompleta": "#0ea5e9",
    "checagemFinalPendente": WARNING_COLOR,
    "concluido": SUCCESS_COLOR,
    "sucateadoPendente": "#f97316",
    "sucateado": DANGER_COLOR,
}

STATUS_LABELS = {
    "peritagemPendente": "Peritagem pending",
    "emExecucao": "In execution",
    "producaoCompleta": "Production complete",
    "checagemFinalPendente": "Final check pending",
    "concluido": "Completed",
    "sucateadoPendente": "Scrap pending",
    "sucateado": "Scrapped",
}


def header(title: str, subtitle: str, icon: str = "🛠️"):
    st.markdown(f"## {icon} {title}")
    st.caption(subtitle)


def add_grid(fig):
    """Shared axis and background styling for plotly figures."""
    fig.update_xaxes(showgrid=False, showline=True, linecolor=GRID_COLOR,
                     tickfont=dict(color=SUBTLE_TEXT), title_font=dict(color=TEXT_COLOR))
    fig.update_yaxes(showgrid=True, gridcolor=GRID_COLOR, zeroline=False,
                     tickfont=dict(color=SUBTLE_TEXT), title_font=dict(color=TEXT_COLOR))
    fig.update_layout(plot_bgcolor=CARD_BG_LIGHT, paper_bgcolor=CARD_BG_LIGHT,
                      font=dict(family="Segoe UI, sans-serif", size=12, color=TEXT_COLOR))
    return fig
