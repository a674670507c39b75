import sys

from PyQt5.QtWidgets import QApplication

from inkmark.config import get_settings
from inkmark.logging_config import setup_logging
from inkmark.ui import MainWindow


def main():
    """
    Main function to run the markup application.
    It checks for a file path (and optional drawing id) passed as command-line arguments.
    """
    settings = get_settings()
    setup_logging(settings.environment, settings.log_level)

    app = QApplication(sys.argv)

    file_path = sys.argv[1] if len(sys.argv) > 1 else None
    drawing_id = sys.argv[2] if len(sys.argv) > 2 else None

    window = MainWindow(file_path, drawing_id=drawing_id, settings=settings)
    window.showMaximized()
    sys.exit(app.exec_())


if __name__ == '__main__':
    main()
