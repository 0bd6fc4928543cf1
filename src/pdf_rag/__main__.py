"""Allow ``python -m pdf_rag``."""

from pdf_rag.cli import main

raise SystemExit(main())
