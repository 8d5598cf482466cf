from nicegui import ui
from fastapi import Request

import logging

logger = logging.getLogger(__name__)

ERROR_TITLES = {
    400: 'The request could not be processed.',
    404: 'Nothing here.',
    500: 'Oops! Something went wrong.',
}


def error_page(status_code: int, message: str):
    """
    Render a full-screen error card with the status code watermark.

    Args:
        status_code: HTTP status shown in the background.
        message: Details displayed under the title.
    """
    title = ERROR_TITLES.get(status_code, ERROR_TITLES[500])
    with ui.column().classes('items-center justify-center h-screen w-full bg-grey-2 relative').style('padding: 30px'):
        ui.label(str(status_code)).classes('absolute').style('''
            top: 50%;
            left: 50%;
            transform: translate(-50%, -50%);
            font-size: 24rem;
            color: #999;
            opacity: 0.1;
            z-index: 0;
            pointer-events: none;
        ''')

        with ui.column().classes('items-center justify-center relative text-center').style('z-index: 1'):
            ui.label(title).classes('text-h5 text-bold text-red')
            ui.label(message).classes('q-mt-md text-body1')
            ui.button('Go back', on_click=ui.navigate.back) \
                .props('color=primary unelevated') \
                .classes('q-mt-xl')


@ui.page('/error')
def dynamic_error_page(request: Request):
    code = int(request.query_params.get('status', 500))
    message = request.query_params.get('message', 'Unexpected error')
    logger.info(f"dynamic_error_page: status={code} message={message!r}")

    error_page(code, message)
