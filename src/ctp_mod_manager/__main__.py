"""Allow running as ``python -m ctp_mod_manager``"""

from .app import main

main()
