# Copyright (c) 2026 Signer — MIT License

"""Spirit Messenger: run the ceremony in a desktop window."""

import argparse
import html
import os
import sys
import time

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(SCRIPT_DIR)
sys.path.insert(0, PROJECT_DIR)

from PySide6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QLineEdit, QLabel, QScrollArea, QFrame, QPushButton, QSlider,
)
from PySide6.QtCore import Qt, QTimer

from ceremony import (
    CHANNELS_RANGE, DEFAULT_LEXICON_FILE, LENGTH_RANGE, RATE_RANGE,
    highlight_spans, load_lexicon,
)
from presence import DEFAULT_PRESENCE_DIR, FilePresence, presence_label
from session import DEFAULT_STORE_PATH, LocalStore, PatternRejected, Session, sanitize_pattern

PRESENCE_POLL_MS = 5000


# ── Dark theme styles ──────────────────────────────────────

STYLE = """
QMainWindow { background: #000000; }
QWidget { color: #ffffff; }
QScrollArea { border: none; background: transparent; }
QScrollBar:vertical { width: 0; }
QSlider::groove:horizontal { background: #333340; height: 4px; border-radius: 2px; }
QSlider::handle:horizontal {
    background: #ffffff; width: 14px; margin: -5px 0; border-radius: 7px;
}
"""

ROUND_BTN = (
    "QPushButton { background: rgba(255,255,255,0.10); color: #ffffff; border: none;"
    " border-radius: 20px; font-size: 16px; padding: 0 18px; }"
    "QPushButton:hover { background: rgba(255,255,255,0.20); }"
)

ROUND_BTN_ACTIVE = (
    "QPushButton { background: rgba(34,197,94,0.30); color: #ffffff; border: none;"
    " border-radius: 20px; font-size: 16px; padding: 0 18px; }"
    "QPushButton:hover { background: rgba(34,197,94,0.40); }"
)

CHIP_BTN = (
    "QPushButton { background: rgba(255,255,255,0.10); color: #ffffff; border: none;"
    " border-radius: 12px; font-size: 12px; padding: 2px 10px; }"
    "QPushButton:hover { background: rgba(255,255,255,0.20); }"
)

SMALL_LABEL = "color: rgba(255,255,255,0.6); font-size: 12px;"


def veil_html(veil, patterns):
    """Veil as rich text with the first occurrence of each pattern in bold."""
    marked = [False] * len(veil)
    for start, end in highlight_spans(patterns, veil):
        for i in range(start, end):
            marked[i] = True
    out = []
    for digit, hot in zip(veil, marked):
        d = html.escape(digit)
        out.append(f"<b style='color:#86efac'>{d}</b>" if hot else d)
    return "".join(out)


class MessengerWindow(QMainWindow):
    def __init__(self, session, presence):
        super().__init__()
        self.setWindowTitle("Spirit Messenger")
        self.setMinimumSize(420, 560)
        self.resize(520, 720)
        self.setStyleSheet(STYLE)
        self.session = session
        self.presence = presence
        self.session.scheduler.ticked.connect(self._on_tick)

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QVBoxLayout(central)
        main_layout.setContentsMargins(16, 12, 16, 16)
        main_layout.setSpacing(8)

        # Header: presence on the left, settings toggle on the right
        header = QHBoxLayout()
        self.presence_dot = QLabel("●")
        self.presence_dot.setFixedWidth(14)
        header.addWidget(self.presence_dot)
        self.presence_label = QLabel("Channeling alone")
        self.presence_label.setStyleSheet(SMALL_LABEL)
        header.addWidget(self.presence_label, 1)

        self.settings_btn = QPushButton("⚙")
        self.settings_btn.setFixedSize(40, 40)
        self.settings_btn.setCursor(Qt.PointingHandCursor)
        self.settings_btn.setStyleSheet(ROUND_BTN)
        self.settings_btn.clicked.connect(self._toggle_settings)
        header.addWidget(self.settings_btn)
        main_layout.addLayout(header)

        # Settings panel (hidden until toggled)
        self.settings_frame = QFrame()
        self.settings_frame.setStyleSheet(
            "QFrame { background: rgba(20,20,28,0.95); border-radius: 10px; }"
        )
        sl = QVBoxLayout(self.settings_frame)
        sl.setContentsMargins(16, 12, 16, 12)
        sl.setSpacing(6)

        title = QLabel("Ceremony Settings")
        title.setStyleSheet("font-size: 18px; font-weight: 300; letter-spacing: 1px;")
        sl.addWidget(title)

        self.rate_label, self.rate_slider = self._add_slider(
            sl, RATE_RANGE, self.session.set_rate)
        self.length_label, self.length_slider = self._add_slider(
            sl, LENGTH_RANGE, self.session.set_length)
        self.channels_label, self.channels_slider = self._add_slider(
            sl, CHANNELS_RANGE, self.session.set_channels)

        freq_label = QLabel("Frequencies")
        freq_label.setStyleSheet(SMALL_LABEL)
        sl.addWidget(freq_label)

        self.chips_row = QHBoxLayout()
        self.chips_row.setSpacing(6)
        sl.addLayout(self.chips_row)

        add_row = QHBoxLayout()
        self.pattern_input = QLineEdit()
        self.pattern_input.setPlaceholderText("Enter frequency...")
        self.pattern_input.setStyleSheet(
            "QLineEdit { background: rgba(255,255,255,0.10); color: #ffffff; border: none;"
            " border-radius: 8px; padding: 6px 10px; font-size: 13px; }"
        )
        self.pattern_input.textEdited.connect(self._on_pattern_text)
        self.pattern_input.returnPressed.connect(self._add_pattern)
        add_row.addWidget(self.pattern_input, 1)
        add_btn = QPushButton("Add")
        add_btn.setCursor(Qt.PointingHandCursor)
        add_btn.setStyleSheet(CHIP_BTN)
        add_btn.clicked.connect(self._add_pattern)
        add_row.addWidget(add_btn)
        sl.addLayout(add_row)

        self.pattern_error = QLabel("")
        self.pattern_error.setStyleSheet("color: #f87171; font-size: 11px;")
        self.pattern_error.hide()
        sl.addWidget(self.pattern_error)

        btn_row = QHBoxLayout()
        reset_btn = QPushButton("Reset")
        reset_btn.setCursor(Qt.PointingHandCursor)
        reset_btn.setStyleSheet(CHIP_BTN.replace("255,255,255,0.10", "239,68,68,0.20"))
        reset_btn.clicked.connect(self._reset)
        btn_row.addWidget(reset_btn)
        copy_btn = QPushButton("Copy link")
        copy_btn.setCursor(Qt.PointingHandCursor)
        copy_btn.setStyleSheet(CHIP_BTN)
        copy_btn.clicked.connect(self._copy_link)
        btn_row.addWidget(copy_btn)
        close_btn = QPushButton("Close")
        close_btn.setCursor(Qt.PointingHandCursor)
        close_btn.setStyleSheet(CHIP_BTN)
        close_btn.clicked.connect(self._toggle_settings)
        btn_row.addWidget(close_btn)
        sl.addLayout(btn_row)

        self.settings_frame.hide()
        main_layout.addWidget(self.settings_frame)

        # Utterances
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        self.words_label = QLabel("")
        self.words_label.setAlignment(Qt.AlignCenter)
        self.words_label.setWordWrap(True)
        self.words_label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        self.words_label.setStyleSheet("font-size: 20px; letter-spacing: 1px;")
        scroll.setWidget(self.words_label)
        self.words_scroll = scroll
        main_layout.addWidget(scroll, 1)

        # Veil (diagnostic view)
        self.veil_label = QLabel("")
        self.veil_label.setAlignment(Qt.AlignCenter)
        self.veil_label.setTextFormat(Qt.RichText)
        self.veil_label.setStyleSheet(
            "color: rgba(34,197,94,0.8); font-family: monospace; font-size: 13px;"
            " letter-spacing: 3px;"
        )
        self.veil_label.hide()
        main_layout.addWidget(self.veil_label)

        # Footer: [clear] [play/pause] [veil]
        footer = QHBoxLayout()
        footer.addStretch()
        clear_btn = QPushButton("⟲")
        clear_btn.setFixedHeight(40)
        clear_btn.setCursor(Qt.PointingHandCursor)
        clear_btn.setStyleSheet(ROUND_BTN)
        clear_btn.clicked.connect(self._clear)
        footer.addWidget(clear_btn)

        self.play_btn = QPushButton("▶")
        self.play_btn.setFixedHeight(40)
        self.play_btn.setCursor(Qt.PointingHandCursor)
        self.play_btn.setStyleSheet(ROUND_BTN)
        self.play_btn.clicked.connect(self._toggle_play)
        footer.addWidget(self.play_btn)

        self.veil_btn = QPushButton("┇")
        self.veil_btn.setFixedHeight(40)
        self.veil_btn.setCursor(Qt.PointingHandCursor)
        self.veil_btn.setStyleSheet(ROUND_BTN)
        self.veil_btn.clicked.connect(self._toggle_veil)
        footer.addWidget(self.veil_btn)
        footer.addStretch()
        main_layout.addLayout(footer)

        # Presence polling
        self._presence_unsub = self.presence.subscribe(self._on_presence)
        self._presence_timer = QTimer(self)
        self._presence_timer.setInterval(PRESENCE_POLL_MS)
        self._presence_timer.timeout.connect(self.presence.poll)
        self._presence_timer.start()
        QTimer.singleShot(0, self.presence.poll)

        self._sync_settings()
        self._refresh()

    def _add_slider(self, layout, bounds, setter):
        label = QLabel("")
        label.setStyleSheet(SMALL_LABEL)
        layout.addWidget(label)
        slider = QSlider(Qt.Horizontal)
        slider.setRange(*bounds)
        slider.valueChanged.connect(lambda v: self._on_slider(setter, v))
        layout.addWidget(slider)
        return label, slider

    # ── Rendering ──────────────────────────────────────────

    def _sync_settings(self):
        cfg = self.session.config
        for slider, value in ((self.rate_slider, cfg.rate),
                              (self.length_slider, cfg.length),
                              (self.channels_slider, cfg.channels)):
            slider.blockSignals(True)
            slider.setValue(value)
            slider.blockSignals(False)
        self.rate_label.setText(f"Heartbeat ({cfg.rate} per second)")
        self.length_label.setText(f"Aperture ({cfg.length} digits)")
        self.channels_label.setText(f"Witnesses ({cfg.channels})")

        while self.chips_row.count():
            item = self.chips_row.takeAt(0)
            if item.widget():
                item.widget().deleteLater()
        for i, freq in enumerate(cfg.patterns):
            chip = QPushButton(f"{freq}  ×")
            chip.setCursor(Qt.PointingHandCursor)
            chip.setStyleSheet(CHIP_BTN)
            chip.clicked.connect(lambda _=False, idx=i: self._remove_pattern(idx))
            self.chips_row.addWidget(chip)
        self.chips_row.addStretch()

    def _refresh(self):
        words = self.session.words
        if words:
            text = " ".join(words)
            if self.session.playing:
                text += "  …"
            self.words_label.setStyleSheet("font-size: 20px; letter-spacing: 1px;")
        else:
            if not self.session.config.patterns:
                text = "Add a frequency to begin"
            elif self.session.playing:
                text = "• • •"
            else:
                text = "Awaiting alignment..."
            self.words_label.setStyleSheet(
                "font-size: 18px; color: rgba(255,255,255,0.3);"
                if not self.session.playing else "font-size: 20px; color: #fbbf24;"
            )
        self.words_label.setText(text)
        bar = self.words_scroll.verticalScrollBar()
        bar.setValue(bar.maximum())

        self.play_btn.setText("❚❚" if self.session.playing else "▶")
        self._render_veils()

    def _render_veils(self):
        if not self.veil_label.isVisible():
            return
        if self.session.veils:
            lines = [veil_html(v, self.session.config.patterns) for v in self.session.veils]
            self.veil_label.setText("<br>".join(lines))
        else:
            self.veil_label.setText("Press play to see the veil")

    # ── Slots ──────────────────────────────────────────────

    def _on_tick(self, result):
        if result.emitted is not None:
            self._refresh()
        else:
            self._render_veils()

    def _on_slider(self, setter, value):
        setter(value)
        self._sync_settings()

    def _on_pattern_text(self, raw):
        digits = sanitize_pattern(raw)
        if digits != raw:
            self.pattern_input.setText(digits)
        if len(digits) > self.session.config.length:
            self.pattern_error.setText(
                f"Frequency length cannot exceed aperture ({self.session.config.length})")
            self.pattern_error.show()
        else:
            self.pattern_error.hide()

    def _add_pattern(self):
        t0 = time.perf_counter()
        try:
            freq = self.session.add_pattern(self.pattern_input.text())
        except PatternRejected as e:
            self.pattern_error.setText(str(e))
            self.pattern_error.show()
            print(f"  [window._add_pattern] rejected: {e}")
            return
        self.pattern_input.clear()
        self.pattern_error.hide()
        self._sync_settings()
        self._refresh()
        print(f"  [window._add_pattern] '{freq}'  ({(time.perf_counter()-t0)*1000:.2f}ms)")

    def _remove_pattern(self, index):
        self.session.remove_pattern(index)
        self._sync_settings()
        self._refresh()

    def _reset(self):
        self.session.reset()
        self._sync_settings()
        self._refresh()

    def _clear(self):
        self.session.clear_log()
        self._refresh()

    def _toggle_play(self):
        self.session.toggle()
        self._refresh()

    def _toggle_veil(self):
        visible = not self.veil_label.isVisible()
        self.veil_label.setVisible(visible)
        self.veil_btn.setStyleSheet(ROUND_BTN_ACTIVE if visible else ROUND_BTN)
        self._render_veils()

    def _toggle_settings(self):
        self.settings_frame.setVisible(not self.settings_frame.isVisible())

    def _copy_link(self):
        QApplication.clipboard().setText(f"?{self.session.link}")
        print(f"  [window._copy_link] ?{self.session.link}")

    def _on_presence(self, status):
        self.presence_label.setText(presence_label(status.count))
        color = "#fbbf24" if status.connected else "rgba(255,255,255,0.3)"
        self.presence_dot.setStyleSheet(f"color: {color}; font-size: 10px;")

    def closeEvent(self, event):
        self._presence_timer.stop()
        self._presence_unsub()
        self.presence.dispose()
        self.session.close()
        super().closeEvent(event)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Spirit Messenger")
    parser.add_argument("--link", default="", help="query string to open, e.g. '?h=5&f=528'")
    parser.add_argument("--store", default=DEFAULT_STORE_PATH, help="local state file")
    parser.add_argument("--lexicon", default=DEFAULT_LEXICON_FILE, help="newline-separated word list")
    parser.add_argument("--presence-dir", default=DEFAULT_PRESENCE_DIR, help="shared heartbeat directory")
    args = parser.parse_args(argv)

    app = QApplication(sys.argv[:1])
    session = Session(LocalStore(args.store), link=args.link)
    lexicon = load_lexicon(args.lexicon)
    if not lexicon:
        print(f"  [main] no lexicon at {args.lexicon} (run tools/fetch_lexicon.py)")
    session.set_lexicon(lexicon)

    window = MessengerWindow(session, FilePresence(args.presence_dir))
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
