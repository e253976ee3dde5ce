from recordhub.server import main

main()
