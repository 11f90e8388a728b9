from ruby_environments.cli import main

main()
