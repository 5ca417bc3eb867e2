from pruner.main import main

raise SystemExit(main())
