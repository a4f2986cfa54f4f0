#!/usr/bin/env python
"""
Streamlit Web UI for the Manuscript Reconstruction Pipeline.

Run with:
    streamlit run manuscript_recon/app.py

Features:
- Upload a manuscript (DOCX, PDF, HTML, TXT) or paste its text
- AI segmentation with a one-click Manual Mode fallback
- Metadata, author and figure review
- Integrity (QC) panel and live article preview
- Download PDF, DOCX, JSON and the Letter of Acceptance
"""

import sys
from pathlib import Path

# Add project root to path for imports when running as script
_root_dir = Path(__file__).resolve().parent.parent
if str(_root_dir) not in sys.path:
    sys.path.insert(0, str(_root_dir))

import asyncio
import json
import logging
import tempfile
from typing import Optional

import streamlit as st
import streamlit.components.v1 as components

from manuscript_recon.config import get_config
from manuscript_recon.utils.errors import ExtractionFailedError, ExtractorError
from manuscript_recon.utils.manuscript import Author, DocumentStore

logging.getLogger('weasyprint').setLevel(logging.ERROR)
logging.getLogger('fontTools').setLevel(logging.ERROR)
logging.getLogger('PIL').setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# Page config must be first Streamlit command
st.set_page_config(
    page_title="Manuscript Layout",
    page_icon="📄",
    layout="wide",
    initial_sidebar_state="expanded"
)

STATUS_ICONS = {"success": "✅", "warning": "⚠️", "danger": "🛑"}


def load_css():
    """Load custom CSS styles."""
    st.markdown("""
    <style>
    .main-header {
        font-size: 2.2rem;
        font-weight: bold;
        color: #0F4C81;
        text-align: center;
        margin-bottom: 0.5rem;
    }
    .sub-header {
        font-size: 1.1rem;
        color: #888;
        text-align: center;
        margin-bottom: 1.5rem;
    }
    .qc-box {
        border-radius: 5px;
        padding: 0.75rem;
        margin: 0.5rem 0;
        border-left: 4px solid #0F4C81;
        background-color: rgba(15, 76, 129, 0.08);
    }
    </style>
    """, unsafe_allow_html=True)


def init_session_state():
    """Initialize session state variables."""
    defaults = {
        "store": None,
        "error": None,
        "source_text": "",
        "source_figures": [],
        "source_name": "manuscript",
        "model": None,
        "recovered": False,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def render_sidebar() -> dict:
    """Render processing settings and the QC panel."""
    config = get_config()

    st.sidebar.header("⚙️ Settings")
    manual = st.sidebar.toggle(
        "Manual Mode (no AI)",
        value=False,
        help="Lay out the text without the AI backend"
    )
    article_type = st.sidebar.text_input(
        "Article type",
        value=config.extraction.default_article_type
    )
    models = st.sidebar.multiselect(
        "Candidate models (tried in order)",
        options=config.extraction.candidate_models,
        default=config.extraction.candidate_models,
        disabled=manual
    )
    if not config.extraction.api_key and not manual:
        st.sidebar.warning("GEMINI_API_KEY is not set; only Manual Mode will work.")

    store: Optional[DocumentStore] = st.session_state.store
    if store is not None:
        render_qc_panel(store.report)

    return {
        "config": config,
        "manual": manual,
        "article_type": article_type,
        "models": models,
    }


def render_qc_panel(report):
    """Integrity report for the current snapshot."""
    st.sidebar.markdown("---")
    st.sidebar.subheader("🔎 Integrity Check")
    icon = STATUS_ICONS.get(report.status.value, "")
    st.sidebar.markdown(
        f'<div class="qc-box">{icon} <b>{report.status.value.upper()}</b><br>{report.summary}</div>',
        unsafe_allow_html=True
    )
    cols = st.sidebar.columns(2)
    cols[0].metric("Coverage", f"{report.coverage_percent}%")
    cols[1].metric("Words", f"{report.generated_word_count}/{report.original_word_count}")
    if report.missing_sections:
        st.sidebar.write("Missing sections: " + ", ".join(report.missing_sections))
    for issue in report.formatting_issues:
        st.sidebar.caption(issue)


def read_upload(uploaded_file):
    """Extract text and figures from an uploaded file."""
    from manuscript_recon.utils.io import extract

    with tempfile.TemporaryDirectory(prefix="manuscript_recon_") as temp_dir:
        input_path = Path(temp_dir) / uploaded_file.name
        with open(input_path, "wb") as f:
            f.write(uploaded_file.getbuffer())
        return extract(input_path)


def process_manuscript(text: str, figures, settings: dict, manual: bool):
    """Run the AI or manual path and start a new editing session."""
    from manuscript_recon.utils.assembler import ManuscriptAssembler

    config = settings["config"]
    if settings["models"]:
        config.extraction.candidate_models = list(settings["models"])
    assembler = ManuscriptAssembler(config)

    if manual:
        result = assembler.process_manual(text, figures)
    else:
        result = asyncio.run(assembler.process_text(text, figures, settings["article_type"]))

    st.session_state.store = DocumentStore(result.document, text, config.validation)
    st.session_state.model = result.model
    st.session_state.recovered = result.recovered
    st.session_state.error = None


def render_input(settings: dict):
    """Upload / paste area."""
    tabs = st.tabs(["📁 Upload", "📋 Paste text"])

    with tabs[0]:
        uploaded_file = st.file_uploader(
            "Upload a manuscript",
            type=["docx", "pdf", "html", "htm", "txt", "md"],
            help="DOCX, PDF, HTML or plain text"
        )
    with tabs[1]:
        pasted = st.text_area("Manuscript text", height=200)

    if st.button("🚀 Process Manuscript", type="primary", use_container_width=True):
        try:
            if uploaded_file is not None:
                extracted = read_upload(uploaded_file)
                text, figures = extracted.text, extracted.figures
                st.session_state.source_name = Path(uploaded_file.name).stem
            else:
                text, figures = pasted, []
                st.session_state.source_name = "manuscript"

            st.session_state.source_text = text
            st.session_state.source_figures = list(figures)

            with st.spinner("Processing manuscript..."):
                process_manuscript(text, figures, settings, settings["manual"])
            st.success("✅ Manuscript processed")
        except ExtractorError as e:
            st.session_state.error = f"Could not read the file: {e}"
        except ExtractionFailedError as e:
            st.session_state.error = str(e)
        except ValueError as e:
            st.session_state.error = str(e)

    if st.session_state.error:
        st.error(st.session_state.error)
        if st.session_state.source_text and st.button("📝 Switch to Manual Mode"):
            process_manuscript(
                st.session_state.source_text,
                st.session_state.source_figures,
                settings,
                manual=True,
            )
            st.rerun()


def render_metadata(store: DocumentStore):
    """Metadata review form."""
    doc = store.document
    with st.form("metadata"):
        title = st.text_input("Title", doc.title)
        cols = st.columns(4)
        doi = cols[0].text_input("DOI", doc.doi)
        volume = cols[1].text_input("Volume", doc.volume)
        issue = cols[2].text_input("Issue", doc.issue)
        pages = cols[3].text_input("Pages", doc.pages)

        cols = st.columns(4)
        received = cols[0].text_input("Received", doc.received_date)
        revised = cols[1].text_input("Revised", doc.revised_date)
        accepted = cols[2].text_input("Accepted", doc.accepted_date)
        published = cols[3].text_input("Published", doc.published_date)

        abstract = st.text_area("Abstract", doc.abstract, height=150)
        keywords = st.text_input("Keywords (separated by ;)", "; ".join(doc.keywords))

        if st.form_submit_button("Save metadata"):
            for name, value in (
                ("title", title), ("doi", doi), ("volume", volume), ("issue", issue),
                ("pages", pages), ("received_date", received), ("revised_date", revised),
                ("accepted_date", accepted), ("published_date", published),
                ("abstract", abstract), ("keywords", keywords),
            ):
                store.set_field(name, value)
            st.rerun()

    st.markdown("**Authors**")
    rows = [
        {
            "name": a.name,
            "affiliation": a.affiliation,
            "email": a.email or "",
            "corresponding": a.is_corresponding,
        }
        for a in doc.authors
    ]
    edited = st.data_editor(rows, num_rows="dynamic", use_container_width=True, key="authors")
    if st.button("Save authors"):
        if hasattr(edited, "to_dict"):
            edited = edited.to_dict("records")
        authors = [
            Author(
                name=str(row.get("name") or "").strip(),
                affiliation=str(row.get("affiliation") or "").strip(),
                email=str(row.get("email") or "").strip() or None,
                is_corresponding=bool(row.get("corresponding")),
            )
            for row in edited if str(row.get("name") or "").strip()
        ]
        try:
            store.set_authors(authors)
            st.rerun()
        except ValueError as e:
            st.error(str(e))


def render_figures(store: DocumentStore):
    """Figure list with reorder, remove and add."""
    from manuscript_recon.utils.io import data_url

    figures = store.document.figures
    if not figures:
        st.info("No figures")

    for index, figure in enumerate(figures):
        cols = st.columns([1, 3, 1, 1, 1])
        with cols[0]:
            if figure.file_url.startswith(("data:", "http")):
                st.image(figure.file_url, width=120)
        with cols[1]:
            caption = st.text_input(
                f"Figure {figure.id} caption", figure.caption, key=f"caption_{figure.id}"
            )
            if caption != figure.caption:
                store.update_figure_caption(index, caption)
        if cols[2].button("⬆️", key=f"up_{figure.id}", disabled=index == 0):
            store.reorder_figure(index, "up")
            st.rerun()
        if cols[3].button("⬇️", key=f"down_{figure.id}", disabled=index == len(figures) - 1):
            store.reorder_figure(index, "down")
            st.rerun()
        if cols[4].button("🗑️", key=f"remove_{figure.id}"):
            store.remove_figure(index)
            st.rerun()

    with st.expander("Add figure"):
        image = st.file_uploader("Image", type=["png", "jpg", "jpeg", "gif"], key="new_figure")
        caption = st.text_input("Caption", key="new_figure_caption")
        if image is not None and st.button("Add figure"):
            store.add_figure(data_url(image.getvalue(), image.type or "image/png"), caption)
            st.rerun()


def render_sections(store: DocumentStore):
    for index, section in enumerate(store.document.sections):
        with st.expander(section.heading or f"Section {index + 1}"):
            heading = st.text_input("Heading", section.heading, key=f"heading_{index}")
            content = st.text_area("Content", section.content, height=250, key=f"content_{index}")
            if st.button("Save section", key=f"save_section_{index}"):
                if heading != section.heading:
                    store.update_section_heading(index, heading)
                if content != section.content:
                    store.update_section_content(index, content)
                st.rerun()


def render_downloads(store: DocumentStore, settings: dict):
    """Render download buttons."""
    from manuscript_recon.utils.export import DocxExporter, HtmlRenderer, PdfExporter, safe_filename
    from manuscript_recon.utils.letter import LetterOfAcceptance

    config = settings["config"]
    document = store.document
    base_name = safe_filename(document.title)

    st.subheader("📥 Downloads")
    cols = st.columns(4)

    with cols[0]:
        payload = {"manuscript": document.to_dict(), "validation": store.report.to_dict()}
        st.download_button(
            "📄 JSON",
            json.dumps(payload, indent=2, ensure_ascii=False),
            file_name=f"{base_name}.json",
            mime="application/json",
            use_container_width=True
        )

    with cols[1]:
        docx_bytes = DocxExporter(config.journal, config.export, config.layout).to_bytes(document)
        st.download_button(
            "📋 DOCX",
            docx_bytes,
            file_name=f"{base_name}.docx",
            mime="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            use_container_width=True
        )

    with cols[2]:
        try:
            renderer = HtmlRenderer(config.journal, config.export, config.layout)
            pdf_bytes = PdfExporter(renderer).to_bytes(document)
            st.download_button(
                "📕 PDF",
                pdf_bytes,
                file_name=f"{base_name}.pdf",
                mime="application/pdf",
                use_container_width=True
            )
        except (ImportError, OSError) as e:
            st.button(
                "📕 PDF ❌",
                use_container_width=True,
                help=f"PDF export unavailable: {e}",
                disabled=True
            )

    with cols[3]:
        letter = LetterOfAcceptance.from_manuscript(document, config.journal)
        st.download_button(
            "✉️ Letter of Acceptance",
            letter.docx_bytes(config.export),
            file_name=f"LoA_{base_name}.docx",
            mime="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            use_container_width=True
        )


def main():
    """Main application."""
    load_css()
    init_session_state()

    st.markdown('<h1 class="main-header">📄 Manuscript Layout</h1>', unsafe_allow_html=True)
    st.markdown(
        '<p class="sub-header">Turn a manuscript into a journal-styled article</p>',
        unsafe_allow_html=True
    )

    settings = render_sidebar()

    st.markdown("---")
    render_input(settings)

    store: Optional[DocumentStore] = st.session_state.store
    if store is not None:
        st.markdown("---")
        if st.session_state.model:
            note = " (response repaired or backfilled)" if st.session_state.recovered else ""
            st.caption(f"Segmented with {st.session_state.model}{note}")

        tabs = st.tabs(["🖋️ Metadata", "📑 Sections", "🖼️ Figures", "👁️ Preview", "📄 Raw JSON"])

        with tabs[0]:
            render_metadata(store)
        with tabs[1]:
            render_sections(store)
        with tabs[2]:
            render_figures(store)
        with tabs[3]:
            from manuscript_recon.utils.export import HtmlRenderer
            config = settings["config"]
            html = HtmlRenderer(config.journal, config.export, config.layout).render(store.document)
            components.html(html, height=900, scrolling=True)
        with tabs[4]:
            st.json(store.document.to_dict())

        st.markdown("---")
        render_downloads(store, settings)

    st.markdown("---")
    st.markdown(
        """
        <div style="text-align: center; color: #666; font-size: 0.8rem;">
            Manuscript Reconstruction Pipeline v1.0 |
            Built with Streamlit, Gemini, WeasyPrint and python-docx
        </div>
        """,
        unsafe_allow_html=True
    )


if __name__ == "__main__":
    main()
