from bundlectl.main import main

main()
