"""
PopLingo - Tkinter flashcard dictionary

Flow:
1. Setup card: pick "I speak" and "I want to learn" languages.
2. Search: type a term, get a definition, Pop Note (usage note), two examples,
   an illustration and on-demand pronunciation audio.
3. Notebook: saved terms, AI Story Time with every saved word.
4. Study: flip cards over the notebook.

Setup (from repo root):

    python -m venv .venv
    source .venv/bin/activate   # or .venv\\Scripts\\activate on Windows
    pip install -e .

Ensure .env contains:
    OPENAI_API_KEY=sk-...

Then run:
    python main.py
"""

import io
import os
import tkinter as tk
from tkinter import ttk, messagebox
from typing import Callable, Dict, List, Optional, Tuple

from PIL import Image, ImageTk

# Audio playback support
try:
    import pygame
    pygame.mixer.init()
    AUDIO_AVAILABLE = True
    AUDIO_ERROR: Optional[str] = None
except ImportError:
    AUDIO_AVAILABLE = False
    AUDIO_ERROR = "pygame not installed. Install with: pip install pygame"
    print(f"Note: {AUDIO_ERROR}")
except Exception as e:
    AUDIO_AVAILABLE = False
    AUDIO_ERROR = f"Audio device error: {e}"
    print(f"Note: {AUDIO_ERROR}")

from poplingo.logger import logger
from poplingo.api import (
    is_api_available,
    lookup_term_async,
    generate_audio_async,
    generate_story_async,
    highlight_keywords,
)
from poplingo.audio import PcmAudio, write_wav
from poplingo.models import (
    DictionaryEntry,
    Language,
    DEFAULT_NATIVE_LANGUAGE,
    DEFAULT_TARGET_LANGUAGE,
)
from poplingo.notebook import Notebook, StudyDeck

logger.banner("PopLingo - Starting Application")

LANGUAGE_LABELS = [language.value for language in Language]

GENERIC_LOOKUP_ERROR = "Oops! Something went wrong trying to fetch that word. Try again?"
GENERIC_STORY_ERROR = "Oops! The story machine jammed. Try again?"
GENERIC_AUDIO_ERROR = "Couldn't play that audio. Try again?"

PALETTES: Dict[str, Dict[str, str]] = {
    "light": {
        "bg": "#f8fafc",
        "surface": "#ffffff",
        "fg": "#0f172a",
        "muted": "#64748b",
        "accent": "#4f46e5",
        "accent_fg": "#ffffff",
        "accent_active": "#4338ca",
        "pink": "#ec4899",
        "note_bg": "#fffbeb",
        "note_fg": "#78350f",
        "card_back": "#4f46e5",
        "card_back_fg": "#ffffff",
        "field": "#ffffff",
        "button": "#e2e8f0",
        "button_active": "#cbd5e1",
    },
    "dark": {
        "bg": "#0f172a",
        "surface": "#1e293b",
        "fg": "#f1f5f9",
        "muted": "#94a3b8",
        "accent": "#6366f1",
        "accent_fg": "#ffffff",
        "accent_active": "#818cf8",
        "pink": "#f472b6",
        "note_bg": "#422006",
        "note_fg": "#fde68a",
        "card_back": "#3730a3",
        "card_back_fg": "#e0e7ff",
        "field": "#334155",
        "button": "#334155",
        "button_active": "#475569",
    },
}


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1].rstrip() + "…"


# ---------------------------------------------------------------------------
# Scrollable Frame Widget
# ---------------------------------------------------------------------------

class ScrollableFrame(ttk.Frame):
    """
    A frame with a vertical scrollbar. Put children in ``self.content``.
    The mousewheel scrolls whichever ScrollableFrame the pointer is over.
    """

    def __init__(self, parent, **kwargs) -> None:
        super().__init__(parent, **kwargs)
        self.columnconfigure(0, weight=1)
        self.rowconfigure(0, weight=1)

        self.canvas = tk.Canvas(self, highlightthickness=0, borderwidth=0)
        self.scrollbar = ttk.Scrollbar(self, orient="vertical", command=self.canvas.yview)
        self.canvas.configure(yscrollcommand=self.scrollbar.set)
        self.canvas.grid(row=0, column=0, sticky="nsew")
        self.scrollbar.grid(row=0, column=1, sticky="ns")

        self.content = ttk.Frame(self.canvas)
        self._window_id = self.canvas.create_window((0, 0), window=self.content, anchor="nw")

        self.content.bind("<Configure>", self._on_content_configure)
        self.canvas.bind("<Configure>", self._on_canvas_configure)
        self.canvas.bind("<Enter>", self._bind_mousewheel)
        self.canvas.bind("<Leave>", self._unbind_mousewheel)

    def _on_content_configure(self, event: tk.Event) -> None:
        self.canvas.configure(scrollregion=self.canvas.bbox("all"))

    def _on_canvas_configure(self, event: tk.Event) -> None:
        # Content always spans the full canvas width
        self.canvas.itemconfigure(self._window_id, width=event.width)

    def _bind_mousewheel(self, event: tk.Event) -> None:
        self.canvas.bind_all("<MouseWheel>", self._on_mousewheel)
        self.canvas.bind_all("<Button-4>", lambda e: self.canvas.yview_scroll(-1, "units"))
        self.canvas.bind_all("<Button-5>", lambda e: self.canvas.yview_scroll(1, "units"))

    def _unbind_mousewheel(self, event: tk.Event) -> None:
        self.canvas.unbind_all("<MouseWheel>")
        self.canvas.unbind_all("<Button-4>")
        self.canvas.unbind_all("<Button-5>")

    def _on_mousewheel(self, event: tk.Event) -> None:
        # Windows reports multiples of 120, macOS small deltas
        delta = event.delta // 120 if abs(event.delta) >= 120 else event.delta
        self.canvas.yview_scroll(-delta, "units")

    def set_background(self, color: str) -> None:
        self.canvas.configure(background=color)

    def scroll_to_top(self) -> None:
        self.canvas.yview_moveto(0)


# ---------------------------------------------------------------------------
# Image Widget
# ---------------------------------------------------------------------------

class EntryImage(ttk.Frame):
    """Displays an entry's illustration scaled to fit ``max_size``."""

    def __init__(self, parent, max_size: Tuple[int, int] = (480, 320),
                 label_style: str = "SurfaceMuted.TLabel", **kwargs) -> None:
        super().__init__(parent, **kwargs)
        self.max_size = max_size
        self._photo: Optional[ImageTk.PhotoImage] = None

        self.image_label = ttk.Label(self, anchor="center", style=label_style)
        self.image_label.pack(fill="both", expand=True)

    def set_image_bytes(self, data: Optional[bytes], placeholder: str = "No image available") -> bool:
        """Show the encoded image, or ``placeholder`` if there is none or it can't be read."""
        if not data:
            self.set_placeholder(placeholder)
            return False
        try:
            image = Image.open(io.BytesIO(data))
            image.thumbnail(self.max_size, Image.Resampling.LANCZOS)
            self._photo = ImageTk.PhotoImage(image)
            self.image_label.configure(image=self._photo, text="")
            return True
        except Exception as e:
            logger.img_error(f"Could not display image: {e}")
            self.set_placeholder("[Could not display image]")
            return False

    def set_placeholder(self, text: str) -> None:
        self._photo = None
        self.image_label.configure(image="", text=text)

    def bind_click(self, handler: Callable[[tk.Event], None]) -> None:
        self.bind("<Button-1>", handler)
        self.image_label.bind("<Button-1>", handler)


# ---------------------------------------------------------------------------
# Loading Spinner Widget
# ---------------------------------------------------------------------------

class LoadingSpinner(ttk.Frame):
    """A simple animated loading spinner widget for Tkinter."""

    def __init__(self, parent, text: str = "Loading...") -> None:
        super().__init__(parent)

        self.text = text
        self.spinner_chars = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]
        self.spinner_index = 0
        self.is_running = False
        self._after_id = None

        self.label = ttk.Label(self, text=f"{self.spinner_chars[0]} {text}",
                               font=("Helvetica", 14), style="Accent.TLabel")
        self.label.pack(pady=20)

    def start(self, text: Optional[str] = None) -> None:
        if text:
            self.text = text
        if self.is_running:
            return
        self.is_running = True
        self._animate()

    def stop(self) -> None:
        self.is_running = False
        if self._after_id:
            self.after_cancel(self._after_id)
            self._after_id = None

    def _animate(self) -> None:
        if not self.is_running:
            return
        char = self.spinner_chars[self.spinner_index]
        self.label.configure(text=f"{char} {self.text}")
        self.spinner_index = (self.spinner_index + 1) % len(self.spinner_chars)
        self._after_id = self.after(100, self._animate)


# ---------------------------------------------------------------------------
# Audio Button Widget
# ---------------------------------------------------------------------------

_last_wav_path: Optional[str] = None


def play_pcm(audio: PcmAudio) -> None:
    """Write ``audio`` to a temp WAV and play it through pygame's music channel."""
    global _last_wav_path
    path = write_wav(audio)
    _release_last_wav()
    pygame.mixer.music.load(path)
    pygame.mixer.music.play()
    _last_wav_path = path
    logger.aud(f"Playing {audio.duration_seconds:.2f}s of audio")


def _release_last_wav() -> None:
    global _last_wav_path
    if not _last_wav_path:
        return
    if AUDIO_AVAILABLE:
        pygame.mixer.music.stop()
        pygame.mixer.music.unload()
    try:
        os.remove(_last_wav_path)
    except OSError as e:
        logger.debug(f"Could not remove {_last_wav_path}: {e}")
    _last_wav_path = None


class AudioButton(ttk.Button):
    """
    Speaker button that synthesizes ``speak_text`` on click and plays it.
    Clicks are ignored while a previous request is still in flight.
    """

    IDLE_LABEL = "🔊"
    BUSY_LABEL = "⏳"

    def __init__(self, parent, speak_text: str, **kwargs) -> None:
        kwargs.setdefault("width", 3)
        super().__init__(parent, text=self.IDLE_LABEL, command=self._on_click, **kwargs)
        self.speak_text = speak_text or ""
        self._busy = False
        self._app = self.winfo_toplevel()

        if not AUDIO_AVAILABLE or not is_api_available() or not self.speak_text.strip():
            self.state(["disabled"])

    def _on_click(self) -> None:
        if self._busy or not AUDIO_AVAILABLE:
            return
        self._busy = True
        self.configure(text=self.BUSY_LABEL)
        logger.ui(f"Pronounce: {_truncate(self.speak_text, 40)}")
        generate_audio_async(
            self.speak_text,
            lambda audio: self._app.after(0, lambda: self._on_audio_ready(audio)),
        )

    def _on_audio_ready(self, audio: Optional[PcmAudio]) -> None:
        self._busy = False
        if self.winfo_exists():
            self.configure(text=self.IDLE_LABEL)

        if audio is None or audio.frame_count == 0:
            messagebox.showerror("PopLingo", GENERIC_AUDIO_ERROR)
            return
        try:
            play_pcm(audio)
        except Exception as e:
            logger.aud_error(f"Playback failed: {e}", exc_info=True)
            messagebox.showerror("PopLingo", GENERIC_AUDIO_ERROR)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

class PopLingoApp(tk.Tk):
    def __init__(self) -> None:
        super().__init__()
        logger.ui("Initializing PopLingoApp window...")

        self.title("PopLingo")

        window_width = 720
        window_height = 820
        screen_width = self.winfo_screenwidth()
        screen_height = self.winfo_screenheight()
        center_x = int(screen_width / 2 - window_width / 2)
        center_y = int(screen_height / 2 - window_height / 2)
        self.geometry(f"{window_width}x{window_height}+{center_x}+{center_y}")
        self.minsize(420, 480)

        self.style = ttk.Style()
        self.style.theme_use("clam")

        # State
        self.native_lang: Language = DEFAULT_NATIVE_LANGUAGE
        self.target_lang: Language = DEFAULT_TARGET_LANGUAGE
        self.is_dark: bool = False
        self.current_view: str = "SearchCard"
        self.notebook = Notebook(on_change=self._on_notebook_changed)

        self.columnconfigure(0, weight=1)
        self.rowconfigure(1, weight=1)

        self._build_header()

        container = ttk.Frame(self)
        container.grid(row=1, column=0, sticky="nsew")
        container.rowconfigure(0, weight=1)
        container.columnconfigure(0, weight=1)

        self.cards = {}
        logger.ui("Creating card views...")
        for CardClass in (SearchCard, NotebookCard, StudyCard):
            card = CardClass(parent=container, controller=self)
            self.cards[CardClass.__name__] = card
            card.grid(row=0, column=0, sticky="nsew")
            logger.debug(f"  Created: {CardClass.__name__}")

        self._build_nav()

        self.setup_card = LanguageSetupCard(parent=self, controller=self)
        self.setup_card.place(relx=0, rely=0, relwidth=1, relheight=1)

        self.apply_theme()
        self.protocol("WM_DELETE_WINDOW", self._on_close)
        logger.ui("Application initialized successfully")

    # Layout ---------------------------------------------------------------

    def _build_header(self) -> None:
        header = ttk.Frame(self, style="Surface.TFrame", padding=(16, 10))
        header.grid(row=0, column=0, sticky="ew")
        header.columnconfigure(1, weight=1)

        ttk.Label(header, text="PopLingo", style="Brand.TLabel",
                  font=("Helvetica", 20, "bold")).grid(row=0, column=0, sticky="w")

        self.theme_button = ttk.Button(header, command=self.toggle_theme, width=14)
        self.theme_button.grid(row=0, column=1, padx=12)

        self.lang_pair_label = ttk.Label(header, style="Pill.TLabel", font=("Helvetica", 11, "bold"),
                                         padding=(10, 3))
        self.lang_pair_label.grid(row=0, column=2, sticky="e")

    def _build_nav(self) -> None:
        nav = ttk.Frame(self, style="Surface.TFrame", padding=(12, 8))
        nav.grid(row=2, column=0, sticky="ew")
        for col in range(3):
            nav.columnconfigure(col, weight=1)

        self.nav_buttons: Dict[str, ttk.Button] = {}
        for col, (name, label) in enumerate((
            ("SearchCard", "🔍 Search"),
            ("NotebookCard", "📓 Notebook"),
            ("StudyCard", "🎓 Study"),
        )):
            button = ttk.Button(nav, text=label, command=lambda n=name: self.show_card(n))
            button.grid(row=0, column=col, padx=6, sticky="ew")
            self.nav_buttons[name] = button
        self._update_nav()

    def _update_nav(self) -> None:
        for name, button in self.nav_buttons.items():
            button.configure(style="NavActive.TButton" if name == self.current_view else "Nav.TButton")
        count = len(self.notebook)
        self.nav_buttons["NotebookCard"].configure(
            text=f"📓 Notebook ({count})" if count else "📓 Notebook"
        )

    # Theme ----------------------------------------------------------------

    @property
    def palette(self) -> Dict[str, str]:
        return PALETTES["dark" if self.is_dark else "light"]

    def toggle_theme(self) -> None:
        self.is_dark = not self.is_dark
        logger.ui(f"Theme: {'dark' if self.is_dark else 'light'}")
        self.apply_theme()

    def apply_theme(self) -> None:
        p = self.palette
        style = self.style
        self.configure(bg=p["bg"])

        style.configure("TFrame", background=p["bg"])
        style.configure("Surface.TFrame", background=p["surface"])
        style.configure("Note.TFrame", background=p["note_bg"])
        style.configure("Back.TFrame", background=p["card_back"])

        style.configure("TLabel", background=p["bg"], foreground=p["fg"], font=("Helvetica", 14))
        style.configure("Muted.TLabel", background=p["bg"], foreground=p["muted"])
        style.configure("Accent.TLabel", background=p["bg"], foreground=p["accent"])
        style.configure("Surface.TLabel", background=p["surface"], foreground=p["fg"])
        style.configure("SurfaceMuted.TLabel", background=p["surface"], foreground=p["muted"])
        style.configure("Brand.TLabel", background=p["surface"], foreground=p["accent"])
        style.configure("Pill.TLabel", background=p["button"], foreground=p["muted"])
        style.configure("Note.TLabel", background=p["note_bg"], foreground=p["note_fg"])
        style.configure("Back.TLabel", background=p["card_back"], foreground=p["card_back_fg"])

        style.configure("TButton", background=p["button"], foreground=p["fg"], font=("Helvetica", 13),
                        borderwidth=0)
        style.map("TButton", background=[("active", p["button_active"]), ("disabled", p["surface"])],
                  foreground=[("disabled", p["muted"])])
        style.configure("Accent.TButton", background=p["accent"], foreground=p["accent_fg"])
        style.map("Accent.TButton", background=[("active", p["accent_active"]), ("disabled", p["muted"])])
        style.configure("Save.TButton", background=p["surface"], foreground=p["pink"])
        style.configure("Nav.TButton", background=p["surface"], foreground=p["muted"])
        style.configure("NavActive.TButton", background=p["surface"], foreground=p["accent"],
                        font=("Helvetica", 13, "bold"))

        style.configure("TEntry", fieldbackground=p["field"], foreground=p["fg"], insertcolor=p["fg"])
        style.configure("TCombobox", fieldbackground=p["field"], foreground=p["fg"],
                        background=p["button"], arrowcolor=p["fg"])
        style.map("TCombobox", fieldbackground=[("readonly", p["field"])],
                  foreground=[("readonly", p["fg"])])
        style.configure("TScrollbar", background=p["button"], troughcolor=p["bg"])

        self.theme_button.configure(text="🌙 Dark Mode" if self.is_dark else "☀️ Light Mode")
        self._update_lang_pair()

        for card in (*self.cards.values(), self.setup_card):
            card.apply_palette(p)

    def _update_lang_pair(self) -> None:
        self.lang_pair_label.configure(text=f"{self.target_lang.value} → {self.native_lang.value}")

    # Flow -----------------------------------------------------------------

    def confirm_setup(self, native_lang: Language, target_lang: Language) -> None:
        """Triggered from the setup card's Start Learning button."""
        logger.separator(f"Session: {target_lang.value} → {native_lang.value}")
        self.native_lang = native_lang
        self.target_lang = target_lang
        self._update_lang_pair()
        self.setup_card.place_forget()
        self.show_card("SearchCard")

    def show_card(self, name: str) -> None:
        logger.ui_transition(self.current_view, name)
        self.current_view = name
        card = self.cards[name]
        card.refresh()
        card.tkraise()
        self._update_nav()

    def toggle_save(self, entry: DictionaryEntry) -> bool:
        return self.notebook.toggle_save(entry)

    def delete_entry(self, entry_id: str) -> None:
        self.notebook.delete(entry_id)

    def _on_notebook_changed(self, notebook: Notebook) -> None:
        self._update_nav()
        self.cards[self.current_view].refresh()

    def _on_close(self) -> None:
        logger.ui("Window closing")
        _release_last_wav()
        self.destroy()


# ---------------------------------------------------------------------------
# Setup Card
# ---------------------------------------------------------------------------

class LanguageSetupCard(ttk.Frame):
    def __init__(self, parent, controller: PopLingoApp) -> None:
        super().__init__(parent)
        self.controller = controller
        self.columnconfigure(0, weight=1)
        self.rowconfigure(0, weight=1)

        panel = ttk.Frame(self, style="Surface.TFrame", padding=32)
        panel.grid(row=0, column=0)
        panel.columnconfigure(0, weight=1)

        ttk.Label(panel, text="PopLingo", style="Brand.TLabel",
                  font=("Helvetica", 32, "bold"), anchor="center").grid(row=0, column=0, pady=(0, 4))
        ttk.Label(panel, text="Let's get your learning setup.", style="SurfaceMuted.TLabel",
                  anchor="center").grid(row=1, column=0, pady=(0, 24))

        ttk.Label(panel, text="I speak", style="Surface.TLabel",
                  font=("Helvetica", 12, "bold")).grid(row=2, column=0, sticky="w")
        self.native_var = tk.StringVar(value=controller.native_lang.value)
        ttk.Combobox(panel, textvariable=self.native_var, values=LANGUAGE_LABELS, state="readonly",
                     width=28, font=("Helvetica", 14)).grid(row=3, column=0, sticky="ew", pady=(4, 12))

        ttk.Label(panel, text="↓", style="SurfaceMuted.TLabel", anchor="center",
                  font=("Helvetica", 20)).grid(row=4, column=0)

        ttk.Label(panel, text="I want to learn", style="Surface.TLabel",
                  font=("Helvetica", 12, "bold")).grid(row=5, column=0, sticky="w")
        self.target_var = tk.StringVar(value=controller.target_lang.value)
        ttk.Combobox(panel, textvariable=self.target_var, values=LANGUAGE_LABELS, state="readonly",
                     width=28, font=("Helvetica", 14)).grid(row=6, column=0, sticky="ew", pady=(4, 12))

        ttk.Button(panel, text="Start Learning", style="Accent.TButton",
                   command=self._on_start_clicked).grid(row=7, column=0, sticky="ew", pady=(16, 0), ipady=8)

        self.status_label = ttk.Label(panel, style="SurfaceMuted.TLabel", wraplength=360,
                                      font=("Helvetica", 11), justify="center")
        self.status_label.grid(row=8, column=0, pady=(16, 0))
        if not is_api_available():
            self.status_label.configure(
                text="⚠ OPENAI_API_KEY not found. Add it to .env to enable lookups, audio and stories."
            )
        elif not AUDIO_AVAILABLE:
            self.status_label.configure(text=f"⚠ Audio disabled: {AUDIO_ERROR}")

    def _on_start_clicked(self) -> None:
        native = Language(self.native_var.get())
        target = Language(self.target_var.get())
        logger.ui(f"Setup confirmed: native={native.value}, target={target.value}")
        self.controller.confirm_setup(native, target)

    def apply_palette(self, palette: Dict[str, str]) -> None:
        pass

    def refresh(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Search Card
# ---------------------------------------------------------------------------

class SearchCard(ttk.Frame):
    def __init__(self, parent, controller: PopLingoApp) -> None:
        super().__init__(parent)
        self.controller = controller
        self.entry: Optional[DictionaryEntry] = None
        self.loading = False

        self.columnconfigure(0, weight=1)
        self.rowconfigure(0, weight=1)
        self.scrollable = ScrollableFrame(self)
        self.scrollable.grid(row=0, column=0, sticky="nsew")
        self.content = self.scrollable.content
        self.content.columnconfigure(0, weight=1)

        form = ttk.Frame(self.content, style="Surface.TFrame", padding=8)
        form.grid(row=0, column=0, sticky="ew", padx=20, pady=(20, 12))
        form.columnconfigure(0, weight=1)

        self.term_var = tk.StringVar()
        self.term_entry = ttk.Entry(form, textvariable=self.term_var, font=("Helvetica", 18))
        self.term_entry.grid(row=0, column=0, sticky="ew", padx=(4, 8), ipady=6)
        self.term_entry.bind("<Return>", lambda e: self.submit())

        self.search_button = ttk.Button(form, text="🔍", style="Accent.TButton", width=4, command=self.submit)
        self.search_button.grid(row=0, column=1, ipady=6)

        self.spinner = LoadingSpinner(self.content, text="Looking it up...")
        self.spinner.grid(row=1, column=0)
        self.spinner.grid_remove()

        self.empty_label = ttk.Label(self.content, text="🔍\nSearch for a word, phrase, or sentence!",
                                     style="Muted.TLabel", justify="center", anchor="center")
        self.empty_label.grid(row=2, column=0, pady=48)

        self.result_frame = ttk.Frame(self.content, style="Surface.TFrame")
        self.result_frame.grid(row=3, column=0, sticky="ew", padx=20, pady=(0, 24))
        self.result_frame.columnconfigure(0, weight=1)
        self.result_frame.grid_remove()

    def refresh(self) -> None:
        self._update_empty_hint()
        if self.entry is not None:
            self._update_save_button()

    def _update_empty_hint(self) -> None:
        if not self.loading and self.entry is None:
            self.empty_label.configure(
                text=f"🔍\nType a word in {self.controller.target_lang.value}...\n"
                     "Search for a word, phrase, or sentence!"
            )

    def apply_palette(self, palette: Dict[str, str]) -> None:
        self.scrollable.set_background(palette["bg"])

    # Search ---------------------------------------------------------------

    def submit(self) -> None:
        term = self.term_var.get()
        if not term.strip() or self.loading:
            return

        self.loading = True
        self.entry = None
        self._clear_result()
        self.empty_label.grid_remove()
        self.search_button.state(["disabled"])
        self.spinner.grid()
        self.spinner.start(f"Looking up \"{_truncate(term.strip(), 30)}\"...")
        logger.ui(f"Search submitted: {term.strip()}")

        lookup_term_async(
            term,
            self.controller.native_lang,
            self.controller.target_lang,
            lambda entry, error: self.controller.after(0, lambda: self._on_lookup_done(entry, error)),
        )

    def _on_lookup_done(self, entry: Optional[DictionaryEntry], error: Optional[Exception]) -> None:
        self.loading = False
        self.spinner.stop()
        self.spinner.grid_remove()
        self.search_button.state(["!disabled"])

        if error is not None or entry is None:
            logger.error(f"Lookup failed: {error}")
            self.empty_label.grid()
            self._update_empty_hint()
            messagebox.showerror("PopLingo", GENERIC_LOOKUP_ERROR)
            return

        self.entry = entry
        self._render_result(entry)

    # Rendering ------------------------------------------------------------

    def _clear_result(self) -> None:
        for child in self.result_frame.winfo_children():
            child.destroy()
        self.result_frame.grid_remove()

    def _render_result(self, entry: DictionaryEntry) -> None:
        self._clear_result()
        frame = self.result_frame
        wrap = 560

        top = ttk.Frame(frame, style="Surface.TFrame")
        top.grid(row=0, column=0, sticky="ew")
        top.columnconfigure(0, weight=1)

        image = EntryImage(top, max_size=(560, 300), style="Surface.TFrame")
        image.grid(row=0, column=0, sticky="ew", pady=(12, 0))
        image.set_image_bytes(entry.image_bytes)

        self.save_button = ttk.Button(top, style="Save.TButton", width=10,
                                      command=lambda: self._on_save_clicked(entry))
        self.save_button.grid(row=0, column=1, sticky="ne", padx=12, pady=12)
        self._update_save_button()

        body = ttk.Frame(frame, style="Surface.TFrame", padding=(24, 12, 24, 24))
        body.grid(row=1, column=0, sticky="ew")
        body.columnconfigure(0, weight=1)

        heading = ttk.Frame(body, style="Surface.TFrame")
        heading.grid(row=0, column=0, sticky="w")
        ttk.Label(heading, text=entry.term, style="Surface.TLabel",
                  font=("Helvetica", 30, "bold"), wraplength=wrap - 60).pack(side="left")
        AudioButton(heading, entry.term).pack(side="left", padx=12)

        ttk.Label(body, text=entry.definition, style="Surface.TLabel", wraplength=wrap,
                  font=("Helvetica", 16), justify="left").grid(row=1, column=0, sticky="w", pady=(8, 16))

        note = ttk.Frame(body, style="Note.TFrame", padding=14)
        note.grid(row=2, column=0, sticky="ew", pady=(0, 20))
        ttk.Label(note, text="POP NOTE", style="Note.TLabel",
                  font=("Helvetica", 11, "bold")).pack(anchor="w")
        ttk.Label(note, text=entry.usage_note, style="Note.TLabel", wraplength=wrap - 30,
                  font=("Helvetica", 13, "italic"), justify="left").pack(anchor="w", pady=(4, 0))

        ttk.Label(body, text="Examples", style="Surface.TLabel",
                  font=("Helvetica", 16, "bold")).grid(row=3, column=0, sticky="w", pady=(0, 8))

        for idx, example in enumerate(entry.examples):
            row = ttk.Frame(body, padding=12)
            row.grid(row=4 + idx, column=0, sticky="ew", pady=4)
            row.columnconfigure(0, weight=1)
            ttk.Label(row, text=example.text, wraplength=wrap - 80, justify="left",
                      font=("Helvetica", 15), style="Accent.TLabel").grid(row=0, column=0, sticky="w")
            AudioButton(row, example.text).grid(row=0, column=1, sticky="ne", padx=(8, 0))
            ttk.Label(row, text=example.translation, wraplength=wrap - 80, justify="left",
                      style="Muted.TLabel", font=("Helvetica", 13)).grid(row=1, column=0, sticky="w", pady=(4, 0))

        self.result_frame.grid()
        self.scrollable.scroll_to_top()

    def _on_save_clicked(self, entry: DictionaryEntry) -> None:
        self.controller.toggle_save(entry)
        self._update_save_button()

    def _update_save_button(self) -> None:
        if self.entry is None or not self.save_button.winfo_exists():
            return
        saved = self.controller.notebook.is_saved(self.entry.term)
        self.save_button.configure(text="✅ Saved" if saved else "🔖 Save")


# ---------------------------------------------------------------------------
# Notebook Card
# ---------------------------------------------------------------------------

class NotebookCard(ttk.Frame):
    def __init__(self, parent, controller: PopLingoApp) -> None:
        super().__init__(parent)
        self.controller = controller
        self.story: Optional[str] = None
        self.loading_story = False

        self.columnconfigure(0, weight=1)
        self.rowconfigure(0, weight=1)
        self.scrollable = ScrollableFrame(self)
        self.scrollable.grid(row=0, column=0, sticky="nsew")
        self.content = self.scrollable.content
        self.content.columnconfigure(0, weight=1)

        self.empty_label = ttk.Label(
            self.content,
            text="📖\nYour notebook is empty.\nSearch and save words to review them here.",
            style="Muted.TLabel", justify="center", anchor="center",
        )

        # Header
        self.header = ttk.Frame(self.content, padding=(20, 20, 20, 8))
        self.header.columnconfigure(0, weight=1)
        ttk.Label(self.header, text="My Notebook", font=("Helvetica", 26, "bold")).grid(
            row=0, column=0, sticky="w")
        self.count_label = ttk.Label(self.header, style="Pill.TLabel", padding=(10, 3),
                                     font=("Helvetica", 12, "bold"))
        self.count_label.grid(row=0, column=1, sticky="e")

        # Story panel
        self.story_panel = ttk.Frame(self.content, style="Back.TFrame", padding=20)
        self.story_panel.columnconfigure(0, weight=1)
        ttk.Label(self.story_panel, text="✨ AI Story Time", style="Back.TLabel",
                  font=("Helvetica", 18, "bold")).grid(row=0, column=0, sticky="w")
        ttk.Label(self.story_panel, style="Back.TLabel", wraplength=560, font=("Helvetica", 12),
                  text="Generate a funny story using all your saved words to help you memorize them!"
                  ).grid(row=1, column=0, sticky="w", pady=(6, 12))

        self.story_button = ttk.Button(self.story_panel, text="✨ Make a Story",
                                       command=self._on_make_story_clicked)
        self.story_button.grid(row=2, column=0, sticky="ew", ipady=4)

        self.story_text = tk.Text(self.story_panel, wrap="word", height=12, relief="flat",
                                  font=("Helvetica", 13), padx=12, pady=12, borderwidth=0)
        self.story_text.tag_configure("keyword", font=("Helvetica", 13, "bold"))
        self.close_story_button = ttk.Button(self.story_panel, text="CLOSE STORY",
                                             command=self._on_close_story_clicked)

        self.list_frame = ttk.Frame(self.content, padding=(20, 16, 20, 24))
        self.list_frame.columnconfigure(0, weight=1)

    def apply_palette(self, palette: Dict[str, str]) -> None:
        self.scrollable.set_background(palette["bg"])
        self.story_text.configure(background=palette["surface"], foreground=palette["fg"],
                                  insertbackground=palette["fg"])
        self.story_text.tag_configure("keyword", foreground=palette["pink"])

    def refresh(self) -> None:
        entries = self.controller.notebook.entries
        if not entries:
            self.header.grid_remove()
            self.story_panel.grid_remove()
            self.list_frame.grid_remove()
            self.empty_label.grid(row=0, column=0, pady=80)
            return

        self.empty_label.grid_remove()
        self.header.grid(row=0, column=0, sticky="ew")
        self.story_panel.grid(row=1, column=0, sticky="ew", padx=20, pady=(8, 0))
        self.list_frame.grid(row=2, column=0, sticky="ew")
        self.count_label.configure(text=f"{len(entries)} words")
        self._render_story()
        self._render_list(entries)

    # Story ----------------------------------------------------------------

    def _on_make_story_clicked(self) -> None:
        if self.loading_story:
            return
        self.loading_story = True
        self._render_story()
        generate_story_async(
            self.controller.notebook.terms(),
            self.controller.native_lang,
            self.controller.target_lang,
            lambda story, error: self.controller.after(0, lambda: self._on_story_done(story, error)),
        )

    def _on_story_done(self, story: Optional[str], error: Optional[Exception]) -> None:
        self.loading_story = False
        if error is not None:
            logger.error(f"Story failed: {error}")
            messagebox.showerror("PopLingo", GENERIC_STORY_ERROR)
        else:
            self.story = story
        self._render_story()

    def _on_close_story_clicked(self) -> None:
        self.story = None
        self._render_story()

    def _render_story(self) -> None:
        if self.story is None:
            self.story_text.grid_remove()
            self.close_story_button.grid_remove()
            self.story_button.grid()
            if self.loading_story:
                self.story_button.configure(text="✨ Weaving Magic...")
                self.story_button.state(["disabled"])
            else:
                self.story_button.configure(text="✨ Make a Story")
                self.story_button.state(["!disabled"])
            return

        self.story_button.grid_remove()
        self.story_text.configure(state="normal")
        self.story_text.delete("1.0", "end")
        for text, is_keyword in highlight_keywords(self.story):
            self.story_text.insert("end", text, ("keyword",) if is_keyword else ())
        self.story_text.configure(state="disabled")
        self.story_text.grid(row=3, column=0, sticky="ew", pady=(12, 0))
        self.close_story_button.grid(row=4, column=0, sticky="w", pady=(12, 0))

    # List -----------------------------------------------------------------

    def _on_delete_clicked(self, entry_id: str) -> None:
        # The list is rebuilt on change, so let the button's own callback finish first
        self.after_idle(lambda: self.controller.delete_entry(entry_id))

    def _render_list(self, entries: List[DictionaryEntry]) -> None:
        for child in self.list_frame.winfo_children():
            child.destroy()

        for row_index, entry in enumerate(entries):
            row = ttk.Frame(self.list_frame, style="Surface.TFrame", padding=12)
            row.grid(row=row_index, column=0, sticky="ew", pady=6)
            row.columnconfigure(1, weight=1)

            if entry.has_image:
                thumb = EntryImage(row, max_size=(48, 48), style="Surface.TFrame")
                thumb.grid(row=0, column=0, rowspan=2, padx=(0, 12))
                thumb.set_image_bytes(entry.image_bytes, placeholder="")

            title = ttk.Frame(row, style="Surface.TFrame")
            title.grid(row=0, column=1, sticky="w")
            ttk.Label(title, text=entry.term, style="Surface.TLabel",
                      font=("Helvetica", 16, "bold")).pack(side="left")
            AudioButton(title, entry.term).pack(side="left", padx=8)

            ttk.Label(row, text=_truncate(entry.definition, 70), style="SurfaceMuted.TLabel",
                      font=("Helvetica", 12)).grid(row=1, column=1, sticky="w")

            ttk.Button(row, text="🗑", width=3,
                       command=lambda entry_id=entry.id: self._on_delete_clicked(entry_id)
                       ).grid(row=0, column=2, rowspan=2, sticky="e")


# ---------------------------------------------------------------------------
# Study Card
# ---------------------------------------------------------------------------

class StudyCard(ttk.Frame):
    def __init__(self, parent, controller: PopLingoApp) -> None:
        super().__init__(parent)
        self.controller = controller
        self.deck = StudyDeck()

        self.columnconfigure(0, weight=1)
        self.rowconfigure(1, weight=1)

        self.empty_label = ttk.Label(
            self, text="🎓\nNothing to study yet.\nSave some words to the notebook!",
            style="Muted.TLabel", justify="center", anchor="center",
        )

        self.position_label = ttk.Label(self, style="Pill.TLabel", padding=(10, 3),
                                        font=("Courier", 12))
        self.card_frame = ttk.Frame(self, style="Surface.TFrame", padding=24, cursor="hand2")
        self.card_frame.columnconfigure(0, weight=1)
        self.card_frame.bind("<Button-1>", self._on_card_clicked)

        self.controls = ttk.Frame(self)
        ttk.Button(self.controls, text="◀", width=4, command=self._on_previous).pack(side="left", padx=16)
        ttk.Button(self.controls, text="▶", width=4, style="Accent.TButton",
                   command=self._on_next).pack(side="left", padx=16)

    def apply_palette(self, palette: Dict[str, str]) -> None:
        pass

    def refresh(self) -> None:
        self.deck.sync(self.controller.notebook.entries)
        if self.deck.is_empty:
            self.position_label.grid_remove()
            self.card_frame.grid_remove()
            self.controls.grid_remove()
            self.empty_label.grid(row=1, column=0)
            return

        self.empty_label.grid_remove()
        self.position_label.grid(row=0, column=0, pady=(20, 12))
        self.card_frame.grid(row=1, column=0, sticky="nsew", padx=60)
        self.controls.grid(row=2, column=0, pady=20)
        self._render_card()

    def _on_card_clicked(self, event: tk.Event) -> None:
        self.deck.flip()
        self._render_card()

    def _on_next(self) -> None:
        self.deck.next()
        self._render_card()

    def _on_previous(self) -> None:
        self.deck.previous()
        self._render_card()

    def _clickable_label(self, parent, **kwargs) -> ttk.Label:
        label = ttk.Label(parent, **kwargs)
        label.bind("<Button-1>", self._on_card_clicked)
        return label

    def _render_card(self) -> None:
        for child in self.card_frame.winfo_children():
            child.destroy()

        entry = self.deck.current
        if entry is None:
            return
        self.position_label.configure(text=self.deck.position)

        if self.deck.is_flipped:
            self._render_back(entry)
        else:
            self._render_front(entry)

    def _render_front(self, entry: DictionaryEntry) -> None:
        frame = self.card_frame
        frame.configure(style="Surface.TFrame")

        image = EntryImage(frame, max_size=(360, 300), style="Surface.TFrame")
        image.grid(row=0, column=0, sticky="nsew")
        image.set_image_bytes(entry.image_bytes, placeholder="No Image")
        image.bind_click(self._on_card_clicked)

        self._clickable_label(frame, text="Tap to flip", style="SurfaceMuted.TLabel",
                              font=("Helvetica", 10, "bold")).grid(row=1, column=0, sticky="e", pady=(4, 0))
        self._clickable_label(frame, text=entry.term, style="Surface.TLabel", anchor="center",
                              font=("Helvetica", 32, "bold"), wraplength=420).grid(row=2, column=0, pady=(16, 8))
        AudioButton(frame, entry.term).grid(row=3, column=0)

    def _render_back(self, entry: DictionaryEntry) -> None:
        frame = self.card_frame
        frame.configure(style="Back.TFrame")

        heading = ttk.Frame(frame, style="Back.TFrame")
        heading.grid(row=0, column=0, sticky="ew", pady=(0, 20))
        heading.columnconfigure(0, weight=1)
        self._clickable_label(heading, text=entry.term, style="Back.TLabel",
                              font=("Helvetica", 22, "bold")).grid(row=0, column=0, sticky="w")
        AudioButton(heading, entry.term).grid(row=0, column=1, sticky="e")

        self._clickable_label(frame, text="DEFINITION", style="Back.TLabel",
                              font=("Helvetica", 10, "bold")).grid(row=1, column=0, sticky="w")
        self._clickable_label(frame, text=entry.definition, style="Back.TLabel", wraplength=420,
                              justify="left", font=("Helvetica", 17)).grid(row=2, column=0, sticky="w", pady=(4, 20))

        example = entry.first_example
        self._clickable_label(frame, text="EXAMPLE", style="Back.TLabel",
                              font=("Helvetica", 10, "bold")).grid(row=3, column=0, sticky="w")
        self._clickable_label(frame, text=f"\"{example.text}\"" if example else "", style="Back.TLabel",
                              wraplength=420, justify="left",
                              font=("Helvetica", 15, "italic")).grid(row=4, column=0, sticky="w", pady=(4, 0))
        self._clickable_label(frame, text=example.translation if example else "", style="Back.TLabel",
                              wraplength=420, justify="left",
                              font=("Helvetica", 12)).grid(row=5, column=0, sticky="w", pady=(4, 0))
        AudioButton(frame, example.text if example else "").grid(row=6, column=0, sticky="w", pady=(8, 0))

        self._clickable_label(frame, text="⟳", style="Back.TLabel", anchor="center",
                              font=("Helvetica", 20)).grid(row=7, column=0, pady=(24, 0))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    logger.separator("Application Starting")
    logger.info("Creating main application window...")
    app = PopLingoApp()
    logger.success("Application window created, entering main loop")
    app.mainloop()
    logger.separator("Application Closed")
