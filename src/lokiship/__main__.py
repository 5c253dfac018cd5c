from lokiship.app import main

main()
