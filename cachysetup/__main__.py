import cachysetup

if __name__ == '__main__':
	cachysetup.run_as_a_module()
