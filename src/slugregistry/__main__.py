from slugregistry.presentation.cli.main import main

raise SystemExit(main())
