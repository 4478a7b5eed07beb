from __future__ import annotations

from decision_engine.runtime.app import main


if __name__ == "__main__":
    main()
