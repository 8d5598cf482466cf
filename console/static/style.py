from nicegui import ui

BRAND_BLUE = '#2e4a74'
ACCENT = '#20b389'
BG = '#f6f7fb'
CARD_BG = '#ffffff'
BORDER = '#e8edf3'


def change_colors():
    ui.colors(primary=BRAND_BLUE, secondary=ACCENT, accent=ACCENT)


def add_style():
    ui.add_head_html("""
        <link href="https://fonts.googleapis.com/css?family=Montserrat:700,400&display=swap" rel="stylesheet">
        <link href="https://fonts.googleapis.com/icon?family=Material+Icons" rel="stylesheet">
        <style>
        html, body {
        width: 100%;
        min-height: 100vh;
        overflow-x: hidden;
        box-sizing: border-box;
        font-family: 'Montserrat', Arial, sans-serif;
        background: #f8fafd;
        color: #222;
        margin: 0;
        }
        body {
        display: flex;
        flex-direction: column;
        min-height: 100vh;
        margin: 0;
        }
        *, *::before, *::after {
            box-sizing: inherit;
        }
        </style>
        """)


def add_user_style():
    ui.add_head_html("""
    <style>
        .q-card.elevated-card, .card, .q-card--bordered.elevated-card{
            background:#fff !important; border:1px solid #cfd8e3 !important; border-radius:14px !important;
            box-shadow:0 10px 24px rgba(16,24,40,.12), 0 4px 10px rgba(16,24,40,.08) !important;
        }
        .muted{ color:#6b7280; font-size:12px; }
        .header-title{
            font-size:24px;
            font-weight:900;
            color: var(--q-primary);
            margin:0;
            letter-spacing:.2px;
        }
        .kpi-value{ font-size:20px; font-weight:700; }
        .kpi-positive{ color:#16a34a; }
        .kpi-negative{ color:#dc2626; }
    </style>
    """)
