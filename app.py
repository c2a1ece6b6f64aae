import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from pathlib import Path
import sys
from datetime import date

ROOT = Path(__file__).resolve().parent
SRC_DIR = ROOT / 'src'
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from seattle_crime.aggregations import ALL, DerivedView, derive_view, describe_filters, filter_options
from seattle_crime.data.download_data import SeattleCrimeDatasetDownloader
from seattle_crime.loader import apply_load, fetch_load
from seattle_crime.settings import SEATTLE_CENTER, DashboardSettings, load_settings
from seattle_crime.state import (
    LOAD_HINT,
    AppState,
    abandon_load,
    begin_load,
    clear_selection,
    group_from_chart_event,
    initial_state,
    reset_all,
    select,
    set_filters,
)
from seattle_crime.utils.exceptions import ConfigError


PLOTLY_CONFIG = {
    'displaylogo': False,
    'displayModeBar': False,
}

NIBRS_NOTE = (
    "The bars show the FBI's NIBRS categories: **Group A** = crimes with full incident reporting "
    "(e.g. homicide, robbery, burglary, theft, assault). **Group B** = offenses for which only arrest data "
    "is reported (e.g. DUI, disorderly conduct). **Click a bar** to filter the line chart and map to that type."
)

# widget key -> FilterState field
FILTER_WIDGETS = {
    'filter_start': 'start_date',
    'filter_end': 'end_date',
    'filter_precinct': 'precinct',
    'filter_crime_against': 'crime_against',
}


@st.cache_data(show_spinner=False)
def get_settings() -> DashboardSettings:
    return load_settings()


def plot_time_series(view: DerivedView) -> go.Figure:
    fig = px.line(
        x=list(view.time_series.dates),
        y=list(view.time_series.counts),
        markers=True,
    )
    fig.update_traces(hovertemplate='%{x}<br>Incidents: %{y}<extra></extra>')
    fig.update_layout(
        template='plotly_white',
        margin={'l': 50, 'r': 20, 't': 10, 'b': 50},
        xaxis_title='Date',
        yaxis_title='Incidents',
        height=340,
    )
    return fig


def plot_offense_ranking(view: DerivedView) -> go.Figure:
    ranking = view.offense_ranking
    fig = go.Figure(go.Bar(
        x=list(ranking.counts),
        y=list(ranking.labels),
        orientation='h',
        marker_color='#ef6248',
        hovertemplate='%{y}<br>Number of incidents: %{x}<extra></extra>',
    ))
    fig.update_layout(
        template='plotly_white',
        margin={'l': 200, 'r': 20, 't': 10, 'b': 50},
        xaxis_title='Number of incidents',
        yaxis_title='Offense type (NIBRS group)',
        # largest bar on top
        yaxis={'autorange': 'reversed'},
        height=380,
        clickmode='event+select',
    )
    return fig


def plot_incident_map(view: DerivedView) -> go.Figure:
    points = pd.DataFrame(view.map_points, columns=['latitude', 'longitude', 'offense_group', 'date', 'precinct', 'neighborhood'])
    fig = px.scatter_map(
        points,
        lat='latitude',
        lon='longitude',
        custom_data=['offense_group', 'date', 'precinct', 'neighborhood'],
        map_style='carto-positron',
        center=SEATTLE_CENTER,
        zoom=10.5,
        opacity=0.7,
    )
    fig.update_traces(
        marker={'size': 7, 'color': '#b0202f'},
        hovertemplate=(
            '<b>%{customdata[0]}</b><br>'
            '%{customdata[1]} | %{customdata[2]}<br>'
            '%{customdata[3]}<extra></extra>'
        ),
    )
    fig.update_layout(margin={'r': 0, 't': 0, 'l': 0, 'b': 0}, height=420)
    return fig


def get_state() -> AppState:
    return st.session_state['app_state']


def put_state(state: AppState) -> None:
    st.session_state['app_state'] = state


def _sync_filter_widgets(state: AppState) -> None:
    for widget_key, attr in FILTER_WIDGETS.items():
        st.session_state[widget_key] = getattr(state.filters, attr)


def _on_filter_change(widget_key: str) -> None:
    put_state(set_filters(get_state(), **{FILTER_WIDGETS[widget_key]: st.session_state[widget_key]}))


def _bump_chart_key() -> None:
    # a fresh widget key drops the plotly selection, which would otherwise re-select the group
    st.session_state['ranking_chart_nonce'] += 1


def _on_clear_selection() -> None:
    put_state(clear_selection(get_state()))
    _bump_chart_key()


def _on_reset_all() -> None:
    state = reset_all(get_state())
    put_state(state)
    _sync_filter_widgets(state)
    _bump_chart_key()


def _on_load_click() -> None:
    # stored before the fetch starts: the button renders disabled and any later load supersedes this one
    state, generation = begin_load(get_state())
    put_state(state)
    st.session_state['pending_load'] = generation


def _run_pending_load(settings: DashboardSettings) -> None:
    generation = st.session_state.pop('pending_load', None)
    if generation is None:
        return
    filters = get_state().filters
    downloader = SeattleCrimeDatasetDownloader.from_settings(settings)
    try:
        with st.spinner('Loading…'):
            outcome = fetch_load(downloader, generation, filters.start_date, filters.end_date)
    finally:
        downloader.close()
    put_state(apply_load(get_state(), generation, outcome))
    st.rerun()


def _init_session(settings: DashboardSettings) -> None:
    if 'app_state' not in st.session_state:
        state = initial_state(date.today(), settings.lookback_days)
        put_state(state)
        _sync_filter_widgets(state)
    elif get_state().meta.loading and 'pending_load' not in st.session_state:
        # the run that was fetching got interrupted by a rerun
        put_state(abandon_load(get_state()))
    if 'ranking_chart_nonce' not in st.session_state:
        st.session_state['ranking_chart_nonce'] = 0


def _select_options(options: list, widget_key: str) -> list:
    # keep the current choice valid when a reload no longer contains it
    current = st.session_state.get(widget_key, ALL)
    if current not in options:
        options = [*options, current]
    return options


def render_sidebar(settings: DashboardSettings) -> None:
    state = get_state()
    st.sidebar.header('Filters')

    start_col, end_col = st.sidebar.columns(2)
    start_col.date_input('Start date', key='filter_start', on_change=_on_filter_change, args=('filter_start',))
    end_col.date_input('End date', key='filter_end', on_change=_on_filter_change, args=('filter_end',))

    st.sidebar.button(
        'Load data',
        disabled=state.meta.loading,
        on_click=_on_load_click,
        width='stretch',
        type='primary',
    )
    st.sidebar.caption(
        f'Fetches up to {settings.max_total_rows:,} records for the date range (paginated). Date range, precinct, '
        'and crime category filter the loaded data; all charts update when you change filters.'
    )
    _run_pending_load(settings)

    st.sidebar.selectbox(
        'Precinct',
        _select_options(filter_options(state.incidents, 'precinct'), 'filter_precinct'),
        key='filter_precinct',
        on_change=_on_filter_change,
        args=('filter_precinct',),
    )
    st.sidebar.selectbox(
        'Crime against category',
        _select_options(filter_options(state.incidents, 'crime_against'), 'filter_crime_against'),
        key='filter_crime_against',
        on_change=_on_filter_change,
        args=('filter_crime_against',),
    )

    st.sidebar.markdown('**Cross chart selection**')
    selected = state.filters.selected_offense_group
    st.sidebar.markdown(f'`{selected}`' if selected else '`None`')
    clear_col, reset_col = st.sidebar.columns(2)
    clear_col.button('Clear selection', disabled=not selected, on_click=_on_clear_selection, width='stretch')
    reset_col.button('Reset all', on_click=_on_reset_all, width='stretch')


def render_summary(state: AppState, view: DerivedView, settings: DashboardSettings) -> None:
    st.sidebar.markdown('---')
    st.sidebar.subheader('Summary')
    kpi_incidents, kpi_hoods = st.sidebar.columns(2)
    kpi_incidents.metric('Incidents (filtered)', f'{view.incident_count:,}')
    kpi_hoods.metric('Neighborhoods (filtered)', f'{view.neighborhood_count:,}')

    with st.sidebar.expander('How to use'):
        st.markdown(
            f'1) Set date range and click **Load data** to fetch records (paginated, up to {settings.max_total_rows:,} rows).\n'
            '2) Change date range, precinct, or crime category; all three charts update immediately (no new API call).\n'
            '3) Clear selection to return to the broader view.'
        )

    if state.meta.error:
        st.sidebar.error(f'**Error:** {state.meta.error}\n\nTip: {LOAD_HINT}')
    elif state.meta.last_query:
        st.sidebar.caption(f'**Current query:** {state.meta.last_query}')


def main():
    st.set_page_config(page_title='Seattle Police Department Crime Dashboard', layout='wide')
    st.markdown('## Seattle Police Department Crime Dashboard')
    st.caption(
        'Explore reported crime incidents with linked charts. Use the filters on the left, then click an offense '
        'group bar to cross filter the time series and map.'
    )

    try:
        settings = get_settings()
    except ConfigError as err:
        st.error(str(err))
        st.stop()

    st.caption(
        f'Data source: City of Seattle Open Data - SPD Crime Data: 2008-Present (dataset ID: tazs-3rd5). '
        f'API: {settings.api_base}'
    )

    _init_session(settings)
    render_sidebar(settings)

    state = get_state()
    view = derive_view(state.incidents, state.filters, settings.top_n_offenses, settings.map_max_points)
    render_summary(state, view, settings)

    if not state.has_data and not state.meta.error:
        st.info(
            'Set date range and click Load data to fetch records (paginated). Then change filters (date, precinct, '
            'or crime category) and all charts update. Then use the filters and bar chart to explore.'
        )
    else:
        st.write(describe_filters(state.filters))

    st.markdown('### Incidents over time')
    st.plotly_chart(plot_time_series(view), width='stretch', config=PLOTLY_CONFIG)

    st.markdown('### Number of incidents by offense type (NIBRS group)')
    st.caption(NIBRS_NOTE)
    ranking_event = st.plotly_chart(
        plot_offense_ranking(view),
        width='stretch',
        config=PLOTLY_CONFIG,
        key=f"offense-ranking-{st.session_state['ranking_chart_nonce']}",
        on_select='rerun',
        selection_mode=('points',),
    )
    clicked = group_from_chart_event(ranking_event)
    if clicked and clicked != state.filters.selected_offense_group:
        put_state(select(state, clicked))
        st.rerun()
    st.caption('Click a bar to cross-filter the time series and map. Clear selection to show all types again.')

    st.markdown('### Incident locations')
    st.caption(f'Showing up to {settings.map_max_points:,} points (sampled after filtering) for responsiveness.')
    st.plotly_chart(plot_incident_map(view), width='stretch', config=PLOTLY_CONFIG)

    st.caption('Built with Streamlit and Plotly.')


if __name__ == '__main__':
    main()
