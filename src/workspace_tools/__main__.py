from workspace_tools.cli import main

raise SystemExit(main())
