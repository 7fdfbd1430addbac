from card_control.ui.auth_screen import render_auth_screen
from card_control.ui.main_screen import render_main_screen

__all__ = ["render_auth_screen", "render_main_screen"]
