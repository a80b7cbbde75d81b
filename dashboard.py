#!/usr/bin/env python3
"""
Catalog Browser Dashboard
Single-file Streamlit application: film grid with membership toggles and a
detail panel, festivals near you on a map that follows the selected row.

Run:  streamlit run dashboard.py
"""

import sys
import asyncio
import logging
from pathlib import Path

import pandas as pd
import streamlit as st
import plotly.graph_objects as go

# ---------------------------------------------------------------------------
# Page config (must be first Streamlit call)
# ---------------------------------------------------------------------------

st.set_page_config(
    page_title="Films & Festivals",
    page_icon="\U0001F3AC",
    layout="wide",
    initial_sidebar_state="expanded",
)

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cinefest.browser import CatalogBrowser  # noqa: E402
from cinefest.config import load_config  # noqa: E402
from cinefest.enrichment import CatalogQuery  # noqa: E402
from cinefest.geolocation import LocationProvider, parse_coordinate  # noqa: E402
from cinefest.membership import ToggleStatus  # noqa: E402
from cinefest.models import MembershipKind  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CONFIG_PATH = PROJECT_ROOT / 'config.yaml'

TOGGLE_LABELS = {
    MembershipKind.FAVORITES: ('★ Favorite', '☆ Favorite'),
    MembershipKind.WATCHED: ('✓ Watched', 'Mark watched'),
    MembershipKind.TO_WATCH: ('⏰ To watch', 'Watch later'),
}

DISCIPLINE_ICONS = {
    'cinema': '\U0001F3AC',
    'music': '\U0001F3B5',
    'books': '\U0001F4DA',
    'performing_arts': '\U0001F3AD',
    'other': 'ℹ️',
}

GRID_COLUMNS = 4


# ---------------------------------------------------------------------------
# Collaborators backed by st.session_state
# ---------------------------------------------------------------------------

class SessionStateViewport:
    """Keeps the map center/zoom in session state for the next render"""

    def center_on(self, coordinate, zoom_hint):
        st.session_state['map_center'] = {'lat': coordinate.lat, 'lon': coordinate.lon}
        st.session_state['map_zoom'] = zoom_hint


def _on_auth_required():
    st.session_state['auth_required'] = True


def _on_notice(message: str):
    st.session_state.setdefault('notices', []).append(message)


def get_browser() -> CatalogBrowser:
    """One CatalogBrowser per Streamlit session, started once"""
    if 'browser' not in st.session_state:
        config = load_config(CONFIG_PATH)
        browser = CatalogBrowser(
            config,
            viewport=SessionStateViewport(),
            on_auth_required=_on_auth_required,
            on_notice=_on_notice,
        )
        asyncio.run(browser.start())
        st.session_state['browser'] = browser
    return st.session_state['browser']


# ---------------------------------------------------------------------------
# Films
# ---------------------------------------------------------------------------

def render_detail(browser: CatalogBrowser):
    item = browser.detail.item
    if item is None:
        return
    with st.container(border=True):
        left, right = st.columns([1, 2])
        with left:
            if item.poster_url():
                st.image(item.poster_url(), use_container_width=True)
        with right:
            st.subheader(item.title)
            meta = ' • '.join(str(v) for v in [item.year, item.duration] if v)
            if meta:
                st.caption(meta)
            if item.director:
                st.write(f"Directed by {item.director}")
            if item.genre:
                st.write(item.genre)
            if item.synopsis:
                st.write(item.synopsis)
            if st.button("Close", key='detail_close'):
                browser.close_detail()
                st.rerun()


def render_toggle(browser: CatalogBrowser, kind: MembershipKind, item_id: str, member: bool):
    on_label, off_label = TOGGLE_LABELS[kind]
    label = on_label if member else off_label
    if st.button(label, key=f"{kind.value}_{item_id}", type='primary' if member else 'secondary'):
        outcome = asyncio.run(browser.toggle_membership(kind, item_id))
        if outcome.status is not ToggleStatus.REDIRECTED:
            st.rerun()


def render_films(browser: CatalogBrowser):
    st.header("Films")
    search = st.text_input("Search", key='film_search')

    query = CatalogQuery.search(search) if search else CatalogQuery.all()
    if st.session_state.get('loaded') != ('films', query):
        with st.spinner("Loading films..."):
            result = asyncio.run(browser.load(query))
        st.session_state['loaded'] = ('films', query)
        if not result.ok:
            st.error("Could not load the catalog. Try again later.")

    render_detail(browser)

    rows = browser.rows()
    if not rows:
        st.info("No films.")
        return

    for start in range(0, len(rows), GRID_COLUMNS):
        cols = st.columns(GRID_COLUMNS)
        for col, (item, flags) in zip(cols, rows[start:start + GRID_COLUMNS]):
            with col:
                if item.poster_url():
                    st.image(item.poster_url(), use_container_width=True)
                st.markdown(f"**{item.title}**")
                if item.director:
                    st.caption(f"{item.director} • {item.year or ''}")
                if st.button("Details", key=f"detail_{item.id}"):
                    browser.open_detail(item)
                    st.rerun()
                if browser.memberships.authenticated:
                    for kind in MembershipKind:
                        render_toggle(browser, kind, item.id, flags[kind])


# ---------------------------------------------------------------------------
# Festivals
# ---------------------------------------------------------------------------

def build_map(browser: CatalogBrowser) -> go.Figure:
    markers = browser.selection.markers()
    selected = browser.selection.selected_index

    fig = go.Figure(go.Scattermapbox(
        lat=[item.coordinate.lat for _, item in markers],
        lon=[item.coordinate.lon for _, item in markers],
        text=[item.title for _, item in markers],
        customdata=[index for index, _ in markers],
        mode='markers',
        marker=dict(
            size=[16 if index == selected else 10 for index, _ in markers],
            color=['#2563EB' if index == selected else '#9CA3AF' for index, _ in markers],
        ),
        hoverinfo='text',
    ))

    center = st.session_state.get('map_center')
    if center is None and markers:
        first = markers[0][1].coordinate
        center = {'lat': first.lat, 'lon': first.lon}

    fig.update_layout(
        mapbox=dict(
            style='open-street-map',
            center=center or {'lat': 46.6, 'lon': 2.4},
            zoom=st.session_state.get('map_zoom', 5),
        ),
        margin=dict(l=0, r=0, t=0, b=0),
        height=480,
        showlegend=False,
    )
    return fig


def festivals_frame(browser: CatalogBrowser) -> pd.DataFrame:
    return pd.DataFrame([
        {
            '': DISCIPLINE_ICONS[item.discipline_category()],
            'Festival': item.title,
            'Address': item.full_address(),
            'Period': item.period or '',
            'Discipline': item.discipline or '',
            'Website': item.website or '',
        }
        for item in browser.selection.items
    ])


def render_festivals(browser: CatalogBrowser):
    st.header("Festivals near you")
    position = st.text_input("Position (lat, lon) — leave empty to locate from IP", key='position')

    if st.session_state.get('loaded') != ('festivals', position):
        if position:
            coordinate = parse_coordinate(position)
            if coordinate is None:
                st.error("Expected 'lat, lon', e.g. 48.8566, 2.3522")
                return
            browser.location_provider = LocationProvider(override=coordinate)
        with st.spinner("Loading festivals..."):
            result = asyncio.run(browser.load_nearby())
        st.session_state['loaded'] = ('festivals', position)
        if not result.ok:
            st.error(f"Could not load festivals ({result.error}).")

    if not browser.selection.items:
        st.info("No festivals.")
        return

    event = st.plotly_chart(build_map(browser), use_container_width=True,
                            on_select='rerun', key='festival_map')
    points = event.selection.points if event else []
    marker = points[0].get('customdata') if points else None
    if browser.selection.select_from_widget('map', None if marker is None else int(marker)):
        st.rerun()

    table = st.dataframe(festivals_frame(browser), use_container_width=True, hide_index=True,
                         on_select='rerun', selection_mode='single-row', key='festival_table')
    rows = table.selection.rows if table else []
    if browser.selection.select_from_widget('table', rows[0] if rows else None):
        st.rerun()

    item = browser.selection.selected_item
    if item is not None:
        st.subheader(item.title)
        st.write(item.full_address())
        if item.email:
            st.write(f"Contact: {item.email}")


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

def render_sidebar(browser: CatalogBrowser) -> str:
    with st.sidebar:
        st.title("\U0001F3AC Films & Festivals")
        page = st.radio("View", ["Films", "Festivals"])

        st.divider()
        if browser.session:
            avatar = st.session_state.get('avatar')
            if avatar is None:
                avatar = asyncio.run(browser.avatar()) or ''
                st.session_state['avatar'] = avatar
            if avatar:
                st.image(avatar, width=64)
            st.caption(f"Signed in as {browser.session.user_id}")
            for kind in MembershipKind:
                st.write(f"{kind.value}: {len(browser.memberships.sets[kind])}")
            if st.button("Log out"):
                browser.logout()
                st.session_state.pop('avatar', None)
                st.rerun()
        else:
            st.caption("Browsing anonymously. Store a session with `python browse.py login`.")
    return page


def main():
    browser = get_browser()
    page = render_sidebar(browser)

    if st.session_state.pop('auth_required', False):
        st.warning("Log in to manage your lists.")
    for message in st.session_state.pop('notices', []):
        st.toast(message)

    if page == "Films":
        render_films(browser)
    else:
        render_festivals(browser)


main()
